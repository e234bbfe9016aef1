"""Price and daily-bar access for sizing."""

import logging
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from altdata.api.cache import TTLCache
from altdata.models import PriceBar


logger = logging.getLogger(__name__)

_MISSING = object()


class PriceDataService(ABC):
    """
    Abstract interface to a price/bar provider.

    Implementations raise ExternalServiceError when the provider fails
    after its own retries; "no data" is an empty list or None.
    """

    @abstractmethod
    def get_daily_bars(self, instrument_id: str, start: date, end: date) -> list[PriceBar]:
        """Daily bars in [start, end], oldest first."""
        pass

    def get_daily_bars_batch(
        self,
        instrument_ids: Iterable[str],
        start: date,
        end: date,
    ) -> dict[str, list[PriceBar]]:
        """Daily bars for several instruments. Providers with a batch endpoint override this."""
        return {i: self.get_daily_bars(i, start, end) for i in instrument_ids}

    @abstractmethod
    def get_current_price(self, instrument_id: str) -> Optional[Decimal]:
        """Latest trade price, or None if unavailable."""
        pass


class InMemoryPriceDataService(PriceDataService):
    """Price service over preloaded bars and prices."""

    def __init__(
        self,
        bars: Optional[Mapping[str, list[PriceBar]]] = None,
        prices: Optional[Mapping[str, Decimal]] = None,
    ):
        self.bars = {k: sorted(v, key=lambda b: b.timestamp) for k, v in (bars or {}).items()}
        self.prices = {k: Decimal(str(v)) for k, v in (prices or {}).items() if v is not None}
        self.bar_calls = 0
        self.batch_calls = 0
        self.price_calls = 0

    def get_daily_bars(self, instrument_id: str, start: date, end: date) -> list[PriceBar]:
        self.bar_calls += 1
        return [
            b for b in self.bars.get(instrument_id, [])
            if start <= b.timestamp.date() <= end
        ]

    def get_daily_bars_batch(self, instrument_ids, start, end) -> dict[str, list[PriceBar]]:
        self.batch_calls += 1
        return {
            i: [b for b in self.bars.get(i, []) if start <= b.timestamp.date() <= end]
            for i in instrument_ids
        }

    def get_current_price(self, instrument_id: str) -> Optional[Decimal]:
        self.price_calls += 1
        return self.prices.get(instrument_id)


class CachingPriceDataService(PriceDataService):
    """
    Read-through cache in front of another price service.

    Bars are cached per (instrument, start, end) and prices per instrument.
    Batch requests only forward the instruments that missed.
    """

    def __init__(
        self,
        inner: PriceDataService,
        cache: Optional[TTLCache] = None,
        bars_ttl: float = 3600.0,
        price_ttl: float = 60.0,
    ):
        self.inner = inner
        self.cache = cache or TTLCache(max_size=10000, default_ttl=bars_ttl)
        self.bars_ttl = bars_ttl
        self.price_ttl = price_ttl

    def get_daily_bars(self, instrument_id: str, start: date, end: date) -> list[PriceBar]:
        key = ("bars", instrument_id, start, end)
        bars = self.cache.get(key, _MISSING)
        if bars is _MISSING:
            bars = self.inner.get_daily_bars(instrument_id, start, end)
            self.cache.set(key, bars, self.bars_ttl)
        return bars

    def get_daily_bars_batch(self, instrument_ids, start, end) -> dict[str, list[PriceBar]]:
        result: dict[str, list[PriceBar]] = {}
        missing: list[str] = []

        for instrument_id in instrument_ids:
            bars = self.cache.get(("bars", instrument_id, start, end), _MISSING)
            if bars is _MISSING:
                missing.append(instrument_id)
            else:
                result[instrument_id] = bars

        if missing:
            fetched = self.inner.get_daily_bars_batch(missing, start, end)
            for instrument_id in missing:
                bars = fetched.get(instrument_id, [])
                self.cache.set(("bars", instrument_id, start, end), bars, self.bars_ttl)
                result[instrument_id] = bars
            logger.debug(f"Fetched bars for {len(missing)} instruments, {len(result) - len(missing)} cached")

        return result

    def get_current_price(self, instrument_id: str) -> Optional[Decimal]:
        key = ("price", instrument_id)
        price = self.cache.get(key, _MISSING)
        if price is _MISSING:
            price = self.inner.get_current_price(instrument_id)
            # Misses are not cached so a recovered quote is seen next pass
            if price is not None:
                self.cache.set(key, price, self.price_ttl)
        return price
