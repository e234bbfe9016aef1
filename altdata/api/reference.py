"""
Read-through reference data lookups (sector, industry, annual revenue).

Profiles are cached per instrument with a TTL. Outbound calls are bounded
by a per-day budget; when the budget is spent or the API fails, the last
known profile is served, and when there is none the lookup answers None.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Mapping, Optional

from core.exceptions import ExternalServiceError
from ..models import CompanyProfile
from .cache import TTLCache
from .client import FmpClient
from .rate_limit import DailyCallBudget, RateLimiter


logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 30 * 24 * 3600
NEGATIVE_CACHE_TTL_SECONDS = 24 * 3600
STALE_TTL_SECONDS = 365 * 24 * 3600
DAILY_CALL_CEILING = 200

# Approximate USD annual revenue, used for materiality only when the
# profile carries none
HARDCODED_ANNUAL_REVENUE = {
    "LMT": Decimal("67000000000"),
    "NOC": Decimal("41000000000"),
    "RTX": Decimal("69000000000"),
    "BA": Decimal("77000000000"),
    "GD": Decimal("42000000000"),
    "HII": Decimal("11000000000"),
}

_MISSING = object()


class ReferenceDataService:
    """Cached company profile lookups backed by FmpClient."""

    def __init__(
        self,
        client: Optional[FmpClient] = None,
        cache: Optional[TTLCache] = None,
        daily_call_ceiling: int = DAILY_CALL_CEILING,
        fallback_revenue: Optional[Mapping[str, Decimal]] = None,
        budget: Optional[DailyCallBudget] = None,
        clock: Optional[Callable[[], datetime]] = None,
        stale_cache: Optional[TTLCache] = None,
    ):
        self.client = client or FmpClient()
        self.cache = cache or TTLCache(max_size=5000, default_ttl=CACHE_TTL_SECONDS)
        self.budget = budget or DailyCallBudget(daily_call_ceiling, clock=clock)
        self.fallback_revenue = dict(
            HARDCODED_ANNUAL_REVENUE if fallback_revenue is None else fallback_revenue
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        # Last good profile per symbol, served when a refresh fails
        self.stale_cache = stale_cache or TTLCache(max_size=self.cache.max_size, default_ttl=STALE_TTL_SECONDS)

    @classmethod
    def from_config(cls, config, client: Optional[FmpClient] = None) -> "ReferenceDataService":
        """Build from a ReferenceDataConfig."""
        client = client or FmpClient(rate_limiter=RateLimiter(config.requests_per_second))
        return cls(
            client=client,
            cache=TTLCache(max_size=config.cache_max_size, default_ttl=config.cache_ttl_seconds),
            daily_call_ceiling=config.daily_call_ceiling,
        )

    def get_company_profile(self, instrument_id: str, force_refresh: bool = False) -> Optional[CompanyProfile]:
        """
        Get a company profile.

        Args:
            instrument_id: Ticker symbol
            force_refresh: Bypass the cache (still subject to the daily budget)

        Returns:
            CompanyProfile, or None if nothing is known about the symbol
        """
        if not instrument_id:
            return None

        sym = instrument_id.strip().upper()

        if not force_refresh:
            cached = self.cache.get(sym, _MISSING)
            if cached is not _MISSING:
                return cached

        stale = self.stale_cache.get(sym)

        if not self.budget.try_acquire():
            logger.info(f"Reference call budget spent; serving last known profile for {sym}")
            return stale

        try:
            payload = self.client.fetch_company_profile(sym)
        except ExternalServiceError as e:
            logger.warning(f"Profile fetch failed for {sym}: {e}")
            return stale

        if payload is None:
            if stale is None:
                self.cache.set(sym, None, ttl=NEGATIVE_CACHE_TTL_SECONDS)
            return stale

        profile = CompanyProfile.from_api_response(payload, fetched_at=self._clock())
        self.cache.set(sym, profile)
        self.stale_cache.set(sym, profile)
        return profile

    def get_sector(self, instrument_id: str) -> Optional[str]:
        profile = self.get_company_profile(instrument_id)
        return profile.sector if profile else None

    def get_industry(self, instrument_id: str) -> Optional[str]:
        profile = self.get_company_profile(instrument_id)
        return profile.industry if profile else None

    def get_annual_revenue(self, instrument_id: str) -> Optional[Decimal]:
        """Annual revenue in USD from the profile, else the fallback table."""
        if not instrument_id:
            return None

        sym = instrument_id.strip().upper()
        profile = self.get_company_profile(sym)
        if profile is not None and profile.annual_revenue is not None:
            return profile.annual_revenue

        return self.fallback_revenue.get(sym)
