"""Reference data models: politician quality and company profiles."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..money import parse_money


@dataclass(frozen=True)
class PoliticianProfile:
    """Historical trading quality of a member of Congress (0-10)."""

    name: str
    quality_score: Optional[float] = None


@dataclass(frozen=True)
class CompanyProfile:
    """Company fundamentals used for sector and materiality checks."""

    instrument_id: str
    company_name: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    annual_revenue: Optional[Decimal] = None
    fetched_at: Optional[datetime] = None

    @classmethod
    def from_api_response(cls, data: dict, fetched_at: Optional[datetime] = None) -> "CompanyProfile":
        """Create CompanyProfile from a Financial Modeling Prep profile payload."""
        revenue = parse_money(data.get("revenue"))
        return cls(
            instrument_id=str(data.get("symbol", "")).upper(),
            company_name=data.get("companyName"),
            sector=data.get("sector") or None,
            industry=data.get("industry") or None,
            annual_revenue=revenue if revenue is not None and revenue > 0 else None,
            fetched_at=fetched_at,
        )
