"""Government contract award model."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..money import parse_money
from .trade import _symbol, _to_date


QUARTERLY_TOTAL = "QuarterlyTotal"


@dataclass(frozen=True)
class GovernmentContract:
    """A federal contract award or quarterly award total."""

    instrument_id: str
    agency: str
    contract_value: Decimal
    award_date: date
    contract_type: str = "Award"
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, data: dict) -> "GovernmentContract":
        """Create GovernmentContract from a store row."""
        value = parse_money(data["contract_value"])
        if value is None:
            raise ValueError(f"Unparseable contract value: {data['contract_value']!r}")

        updated = data.get("updated_at")
        if hasattr(updated, "to_pydatetime"):
            updated = updated.to_pydatetime()
        elif isinstance(updated, str) and updated:
            updated = datetime.fromisoformat(updated.replace("Z", "+00:00"))
        # NaT compares unequal to itself
        if not isinstance(updated, datetime) or updated != updated:
            updated = None

        return cls(
            instrument_id=_symbol(data["instrument_id"]),
            agency=str(data.get("agency") or ""),
            contract_value=value,
            award_date=_to_date(data["award_date"]),
            contract_type=str(data.get("contract_type") or "Award"),
            updated_at=updated,
        )

    @property
    def effective_date(self) -> date:
        """
        Date the contract became public.

        Quarterly totals carry the quarter start as award date, so the
        record's update time is used instead.
        """
        if self.contract_type == QUARTERLY_TOTAL and self.updated_at is not None:
            return self.updated_at.date()
        return self.award_date
