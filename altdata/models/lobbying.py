"""Lobbying expenditure model."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..money import parse_money
from .trade import _symbol


@dataclass(frozen=True)
class LobbyingExpenditure:
    """Quarterly lobbying spend filed on behalf of a company."""

    instrument_id: str
    quarter: str  # "2025-Q3"
    amount: Decimal
    client: Optional[str] = None

    @classmethod
    def from_record(cls, data: dict) -> "LobbyingExpenditure":
        """Create LobbyingExpenditure from a store row."""
        amount = parse_money(data["amount"])
        if amount is None:
            raise ValueError(f"Unparseable lobbying amount: {data['amount']!r}")

        client = data.get("client")
        return cls(
            instrument_id=_symbol(data["instrument_id"]),
            quarter=str(data["quarter"]),
            amount=amount,
            client=client if isinstance(client, str) and client else None,
        )


def quarter_label(year: int, quarter: int) -> str:
    """Format a quarter as "YYYY-QN"."""
    if not 1 <= quarter <= 4:
        raise ValueError(f"Quarter must be 1-4, got {quarter}")
    return f"{year}-Q{quarter}"


def previous_quarter(as_of: date) -> str:
    """
    Label of the last completed calendar quarter.

    Filings for a quarter land after it closes, so on 2025-05-10 the
    most recent complete quarter is 2025-Q1.
    """
    current = (as_of.month - 1) // 3 + 1
    if current == 1:
        return quarter_label(as_of.year - 1, 4)
    return quarter_label(as_of.year, current - 1)
