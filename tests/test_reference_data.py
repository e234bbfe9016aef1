"""Tests for the reference-data cache, rate limits, FMP client and lookup service."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import requests

from altdata.api import (
    DailyCallBudget,
    FmpClient,
    ReferenceDataService,
    TTLCache,
)
from core.exceptions import ExternalServiceError


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _response(status=200, body=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.json.return_value = body
    response.text = str(body)
    return response


class TestTTLCache:
    """Tests for TTLCache."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.cache = TTLCache(max_size=2, default_ttl=10, clock=self.clock)

    def test_expiry(self):
        """Test entries expire after their TTL."""
        self.cache.set("a", 1)
        self.clock.advance(9)
        assert self.cache.get("a") == 1
        self.clock.advance(1)
        assert self.cache.get("a") is None

    def test_cached_none_is_distinct_from_miss(self):
        """Test a stored None is returned instead of the default."""
        sentinel = object()
        self.cache.set("nothing", None)
        assert self.cache.get("nothing", sentinel) is None
        assert self.cache.get("missing", sentinel) is sentinel

    def test_len_excludes_expired(self):
        """Test expired entries are not counted."""
        self.cache.set("a", 1, ttl=1)
        self.cache.set("b", 2)
        self.clock.advance(5)

        assert len(self.cache) == 1

    def test_lru_eviction(self):
        """Test the least recently used entry is evicted first."""
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.get("a")
        self.cache.set("c", 3)

        assert "a" in self.cache
        assert "b" not in self.cache
        assert len(self.cache) == 2

    def test_delete(self):
        """Test deleting reports whether the key existed."""
        self.cache.set("a", 1)
        assert self.cache.delete("a") is True
        assert self.cache.delete("a") is False
        assert "a" not in self.cache

    def test_get_or_set_calls_factory_once(self):
        """Test the factory only runs on a miss."""
        factory = MagicMock(return_value=42)
        assert self.cache.get_or_set("k", factory) == 42
        assert self.cache.get_or_set("k", factory) == 42
        factory.assert_called_once()

    def test_stats_and_cleanup(self):
        """Test hit/miss counters and expired cleanup."""
        self.cache.set("a", 1, ttl=1)
        self.cache.get("a")
        self.cache.get("zzz")
        self.clock.advance(2)

        assert self.cache.cleanup_expired() == 1
        stats = self.cache.stats
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(0.5)


class TestDailyCallBudget:
    """Tests for DailyCallBudget."""

    def test_budget_exhausts_and_resets_next_day(self):
        """Test the ceiling is enforced per UTC day."""
        now = [datetime(2025, 6, 1, 23, 0, tzinfo=timezone.utc)]
        budget = DailyCallBudget(limit=2, clock=lambda: now[0])

        assert budget.try_acquire()
        assert budget.try_acquire()
        assert not budget.try_acquire()
        assert budget.remaining == 0

        now[0] += timedelta(hours=2)
        assert budget.remaining == 2
        assert budget.try_acquire()

    def test_zero_limit_never_allows(self):
        """Test a zero ceiling blocks every call."""
        assert not DailyCallBudget(limit=0).try_acquire()


class TestFmpClient:
    """Tests for FmpClient."""

    def setup_method(self):
        """Set up test fixtures."""
        self.session = MagicMock()
        self.client = FmpClient(api_key="test-key", session=self.session)

    def test_fetch_company_profile(self):
        """Test a profile row is normalized."""
        self.session.get.return_value = _response(body=[{
            "symbol": "LMT",
            "companyName": "Lockheed Martin Corporation",
            "sector": "Industrials",
            "industry": "Aerospace & Defense",
            "revenue": 71000000000,
            "price": 450.0,
        }])

        profile = self.client.fetch_company_profile("lmt")

        assert profile == {
            "symbol": "LMT",
            "companyName": "Lockheed Martin Corporation",
            "sector": "Industrials",
            "industry": "Aerospace & Defense",
            "revenue": 71000000000,
        }
        _, kwargs = self.session.get.call_args
        assert kwargs["params"] == {"symbol": "LMT", "apikey": "test-key"}

    def test_empty_payload_returns_none(self):
        """Test unknown symbols return None."""
        self.session.get.return_value = _response(body=[])
        assert self.client.fetch_company_profile("ZZZZ") is None

    @pytest.mark.parametrize("status,retryable", [(401, False), (403, False), (429, True), (500, True), (404, False)])
    def test_error_statuses(self, status, retryable):
        """Test HTTP errors map to ExternalServiceError with a retry hint."""
        self.session.get.return_value = _response(status=status, body={"error": "nope"})

        with pytest.raises(ExternalServiceError) as exc_info:
            self.client.fetch_company_profile("LMT")
        assert exc_info.value.retryable is retryable
        assert exc_info.value.service == "fmp"

    def test_network_error_is_retryable(self):
        """Test transport failures are retryable service errors."""
        self.session.get.side_effect = requests.ConnectionError("boom")

        with pytest.raises(ExternalServiceError) as exc_info:
            self.client.fetch_company_profile("LMT")
        assert exc_info.value.retryable is True


class TestReferenceDataService:
    """Tests for ReferenceDataService."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = MagicMock(spec=FmpClient)
        self.client.fetch_company_profile.return_value = {
            "symbol": "NVDA",
            "companyName": "NVIDIA",
            "sector": "Technology",
            "industry": "Semiconductors",
            "revenue": 60000000000,
        }
        self.service = ReferenceDataService(client=self.client, daily_call_ceiling=5)

    def test_profile_is_cached(self):
        """Test repeat lookups hit the cache."""
        assert self.service.get_sector("NVDA") == "Technology"
        assert self.service.get_industry("nvda") == "Semiconductors"
        assert self.service.get_annual_revenue("NVDA") == Decimal("60000000000")
        self.client.fetch_company_profile.assert_called_once_with("NVDA")

    def test_missing_profile_is_negative_cached(self):
        """Test an empty lookup is not repeated."""
        self.client.fetch_company_profile.return_value = None

        assert self.service.get_company_profile("ZZZZ") is None
        assert self.service.get_company_profile("ZZZZ") is None
        assert self.client.fetch_company_profile.call_count == 1

    def test_revenue_falls_back_to_table(self):
        """Test hardcoded revenue is used when the profile has none."""
        self.client.fetch_company_profile.return_value = {"symbol": "LMT", "sector": "Industrials", "revenue": None}
        assert self.service.get_annual_revenue("LMT") == Decimal("67000000000")

    def test_error_degrades_to_none(self):
        """Test API failures answer None instead of raising."""
        self.client.fetch_company_profile.side_effect = ExternalServiceError("down", retryable=True)

        assert self.service.get_sector("NVDA") is None
        assert self.service.get_annual_revenue("ZZZZ") is None

    def test_error_serves_last_known_profile(self):
        """Test a failed refresh returns the last good profile."""
        first = self.service.get_company_profile("NVDA")
        self.client.fetch_company_profile.side_effect = ExternalServiceError("down")

        assert self.service.get_company_profile("NVDA", force_refresh=True) == first

    def test_budget_exhaustion_stops_calls(self):
        """Test no calls are made once the daily budget is spent."""
        service = ReferenceDataService(client=self.client, daily_call_ceiling=1)
        service.get_company_profile("NVDA")
        assert service.get_company_profile("AMD") is None
        assert self.client.fetch_company_profile.call_count == 1

    def test_last_known_profiles_are_bounded(self):
        """Test stale fallbacks survive cache expiry but are size-limited."""
        clock = FakeClock()
        service = ReferenceDataService(
            client=self.client,
            cache=TTLCache(max_size=10, default_ttl=10, clock=clock),
            stale_cache=TTLCache(max_size=1, default_ttl=100, clock=clock),
        )
        service.get_company_profile("NVDA")
        amd = service.get_company_profile("AMD")

        clock.advance(20)
        self.client.fetch_company_profile.side_effect = ExternalServiceError("down")

        assert service.get_company_profile("AMD") == amd
        assert service.get_company_profile("NVDA") is None
        assert len(service.stale_cache) == 1
