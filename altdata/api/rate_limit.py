"""Rate limiting for reference-data API requests."""

import logging
import time
from datetime import date, datetime, timezone
from threading import Lock
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket rate limiter for API requests."""

    def __init__(self, requests_per_second: float = 10.0, burst: int = 20):
        """
        Initialize rate limiter.

        Args:
            requests_per_second: Sustained request rate
            burst: Maximum burst size
        """
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive, got {requests_per_second}")
        self.rate = requests_per_second
        self.burst = burst
        self.tokens = burst
        self.last_update = time.monotonic()
        self.lock = Lock()

    def wait(self) -> None:
        """Wait until a request can be made."""
        with self.lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last_update = now

            if self.tokens < 1:
                sleep_time = (1 - self.tokens) / self.rate
                time.sleep(sleep_time)
                self.tokens = 0
            else:
                self.tokens -= 1


class DailyCallBudget:
    """
    Per-day ceiling on outbound calls.

    The free data tier allows a fixed number of requests per UTC day. The
    counter resets when the clock crosses midnight.
    """

    def __init__(self, limit: int = 200, clock: Optional[Callable[[], datetime]] = None):
        if limit < 0:
            raise ValueError(f"Daily call limit must be non-negative, got {limit}")
        self.limit = limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._day: Optional[date] = None
        self._used = 0
        self._lock = Lock()

    def _roll(self) -> None:
        today = self._clock().date()
        if today != self._day:
            self._day = today
            self._used = 0

    def try_acquire(self) -> bool:
        """Consume one call if the budget allows it."""
        with self._lock:
            self._roll()
            if self._used >= self.limit:
                return False
            self._used += 1
            if self._used == self.limit:
                logger.warning(f"Daily API call budget of {self.limit} exhausted")
            return True

    @property
    def used(self) -> int:
        with self._lock:
            self._roll()
            return self._used

    @property
    def remaining(self) -> int:
        with self._lock:
            self._roll()
            return max(0, self.limit - self._used)
