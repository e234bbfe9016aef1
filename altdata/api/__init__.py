"""Reference-data API client components."""

from .cache import TTLCache
from .client import FmpClient
from .rate_limit import DailyCallBudget, RateLimiter
from .reference import HARDCODED_ANNUAL_REVENUE, ReferenceDataService

__all__ = [
    "TTLCache",
    "FmpClient",
    "DailyCallBudget",
    "RateLimiter",
    "HARDCODED_ANNUAL_REVENUE",
    "ReferenceDataService",
]
