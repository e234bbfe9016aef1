"""Contract materiality relative to company revenue."""

from decimal import Decimal
from typing import Optional


def materiality_pct(contract_value: Decimal, annual_revenue: Optional[Decimal]) -> Optional[float]:
    """
    Contract value as a percentage of annual revenue.

    Returns:
        value / revenue * 100, or None if revenue is unknown or non-positive
    """
    if annual_revenue is None:
        return None

    revenue = Decimal(str(annual_revenue))
    if revenue <= 0:
        return None

    return float(Decimal(str(contract_value)) / revenue * 100)
