"""
Temporary exclusion list for instruments that cannot be priced or traded.

Blocked instruments are skipped by sizing and filtered from targets until
their block expires, so a delisted ticker is not retried every pass.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Optional


logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 7


@dataclass(frozen=True)
class BlockedInstrument:
    """An instrument excluded until ``expires_at``."""

    instrument_id: str
    reason: str
    blocked_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def days_until_expiration(self, now: datetime) -> int:
        if self.is_expired(now):
            return 0
        remaining = self.expires_at - now
        return remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)


class BlockList:
    """Thread-safe, in-memory blocklist with per-entry expiry."""

    def __init__(
        self,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if expiry_days <= 0:
            raise ValueError(f"expiry_days must be positive, got {expiry_days}")
        self.expiry_days = expiry_days
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: dict[str, BlockedInstrument] = {}
        self._lock = Lock()

    def block(self, instrument_id: str, reason: str) -> BlockedInstrument:
        """Block an instrument. Re-blocking refreshes the expiry and reason."""
        if not reason:
            raise ValueError("A block reason is required")

        now = self._clock()
        with self._lock:
            existing = self._entries.get(instrument_id)
            entry = BlockedInstrument(
                instrument_id=instrument_id,
                reason=reason,
                blocked_at=existing.blocked_at if existing and not existing.is_expired(now) else now,
                expires_at=now + timedelta(days=self.expiry_days),
            )
            self._entries[instrument_id] = entry

        logger.warning(f"Blocked {instrument_id} until {entry.expires_at:%Y-%m-%d}: {reason}")
        return entry

    def is_blocked(self, instrument_id: str) -> bool:
        entry = self.get(instrument_id)
        return entry is not None

    def get(self, instrument_id: str) -> Optional[BlockedInstrument]:
        """Active block for an instrument, None if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(instrument_id)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    def blocked_ids(self) -> set[str]:
        """Instruments with an active block."""
        now = self._clock()
        with self._lock:
            return {k for k, v in self._entries.items() if not v.is_expired(now)}

    def unblock(self, instrument_id: str) -> bool:
        with self._lock:
            return self._entries.pop(instrument_id, None) is not None

    def cleanup_expired(self) -> int:
        """Remove expired entries; return count removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, v in self._entries.items() if v.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired blocked instruments")
        return len(expired)

    def __len__(self) -> int:
        return len(self.blocked_ids())

    def __contains__(self, instrument_id: str) -> bool:
        return self.is_blocked(instrument_id)
