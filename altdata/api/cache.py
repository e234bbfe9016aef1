"""
LRU in-memory cache with per-entry TTL.

Cached ``None`` is a real value ("looked up, nothing there") and is kept
distinct from a miss: use ``get(key, default)`` with a sentinel to tell
them apart.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Hashable, Optional


_MISSING = object()


@dataclass
class CacheEntry:
    """Cache entry."""
    value: Any
    expire_at: float
    hits: int = 0


class TTLCache:
    """
    LRU (Least Recently Used) cache.

    - Thread-safe
    - TTL expiration
    - Evicts least recently used
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")

        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._cache: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Get cached value; ``default`` if missing or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return default

            if self._clock() >= entry.expire_at:
                del self._cache[key]
                self._misses += 1
                return default

            self._cache.move_to_end(key)
            entry.hits += 1
            self._hits += 1
            return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Set cache value."""
        ttl = ttl if ttl is not None else self.default_ttl

        with self._lock:
            if key in self._cache:
                del self._cache[key]
            while len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = CacheEntry(value=value, expire_at=self._clock() + ttl)

    def get_or_set(self, key: Hashable, factory: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = factory()
            self.set(key, value, ttl)
        return value

    def contains(self, key: Hashable) -> bool:
        """Check for a live entry without touching hit counters."""
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and self._clock() < entry.expire_at

    def delete(self, key: Hashable) -> bool:
        """Delete cache entry."""
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def clear(self) -> None:
        """Clear cache."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def cleanup_expired(self) -> int:
        """Remove expired entries; return count removed."""
        with self._lock:
            now = self._clock()
            expired_keys = [k for k, v in self._cache.items() if now >= v.expire_at]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    @property
    def stats(self) -> dict[str, Any]:
        """Cache stats."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = self._hits / total if total > 0 else 0.0
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
            }

    def __contains__(self, key: Hashable) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        """Number of unexpired entries."""
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._cache.values() if now < entry.expire_at)
