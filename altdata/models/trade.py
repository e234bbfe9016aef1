"""Alternative-data trade disclosure model."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class TradeSource(Enum):
    """Which disclosure feed a trade came from."""
    CONGRESS = "congress"
    INSIDER = "insider"


class TransactionType(Enum):
    """Direction of a disclosed trade."""
    PURCHASE = "Purchase"
    SALE = "Sale"


EXECUTIVE_TITLES = ("CEO", "CFO", "COO", "PRESIDENT", "CHAIRMAN", "CHIEF")


@dataclass(frozen=True)
class AltDataTrade:
    """A single disclosed trade by a politician or corporate insider."""

    instrument_id: str
    trader_identity: str
    transaction_type: TransactionType
    transaction_date: date
    trade_size: Optional[str]  # raw disclosure text, see altdata.money
    source: TradeSource

    # Insider filings only
    relationship: Optional[str] = None

    @classmethod
    def from_record(cls, data: dict) -> "AltDataTrade":
        """Create AltDataTrade from a store row."""
        return cls(
            instrument_id=_symbol(data["instrument_id"]),
            trader_identity=str(data["trader_identity"]),
            transaction_type=TransactionType(data["transaction_type"]),
            transaction_date=_to_date(data["transaction_date"]),
            trade_size=_optional_str(data.get("trade_size")),
            source=TradeSource(data["source"]),
            relationship=_optional_str(data.get("relationship")),
        )

    @property
    def is_purchase(self) -> bool:
        return self.transaction_type == TransactionType.PURCHASE

    @property
    def is_executive(self) -> bool:
        """Check if the insider holds an executive title."""
        if not self.relationship:
            return False
        upper = self.relationship.upper()
        return any(title in upper for title in EXECUTIVE_TITLES)


def _to_date(value) -> date:
    if value is None or value != value:
        raise ValueError("date is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # pandas Timestamps expose to_pydatetime
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime().date()
    return date.fromisoformat(str(value)[:10])


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    # NaN from DataFrames
    if isinstance(value, float) and value != value:
        return None
    text = str(value).strip()
    return text or None


def _symbol(value) -> str:
    text = _optional_str(value)
    if text is None:
        raise ValueError("instrument_id is required")
    return text.upper()
