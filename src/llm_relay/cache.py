"""
Small TTL cache used for resource reads.

Concurrent ``get``/``set`` on the same key is safe; the last write wins.
Expired entries are dropped lazily when read, and the least-recently used
entry is evicted once ``max_size`` is reached.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

__all__ = ["Cache", "CacheStats", "TTLCache"]


@dataclass
class CacheStats:
    """Tracks cache performance metrics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float  # time.monotonic() deadline; 0.0 = never


@runtime_checkable
class Cache(Protocol):
    """Anything with ``get``/``set`` can back the dispatcher's resource cache."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class TTLCache:
    """
    Thread-safe in-memory LRU cache with a single time-to-live.

    Args:
        ttl_seconds: Lifetime of an entry in seconds. ``0`` or ``None`` keeps
            entries until they are evicted by size.
        max_size: Maximum number of entries. ``0`` means unbounded.
        logger: Optional logger for hit/miss tracing.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = 3600,
        max_size: int = 1024,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._data: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._stats = CacheStats()
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    def get(self, key: str) -> Optional[Any]:
        """Retrieve a cached value, returning ``None`` on miss or expiry."""
        with self._lock:
            entry = self._data.get(key)
            if entry is not None and entry.expires_at and time.monotonic() > entry.expires_at:
                del self._data[key]
                entry = None
            if entry is None:
                self._stats.misses += 1
                self.logger.debug("Cache miss for key: %s", key)
                return None
            self._data.move_to_end(key)
            self._stats.hits += 1
        self.logger.debug("Cache hit for key: %s", key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, evicting LRU entries if necessary."""
        expires_at = (time.monotonic() + self._ttl) if self._ttl else 0.0
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            elif self._max_size and len(self._data) >= self._max_size:
                self._data.popitem(last=False)
                self._stats.evictions += 1
            self._data[key] = _CacheEntry(value=value, expires_at=expires_at)
        self.logger.debug("Cache set for key: %s", key)

    def delete(self, key: str) -> bool:
        """Remove a specific key. Returns ``True`` if it was present."""
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._data)
