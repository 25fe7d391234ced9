"""Bounded in-memory cache with uniform TTL and strict LRU eviction."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

V = TypeVar("V")

DEFAULT_MAX_SIZE = 200
DEFAULT_TTL_SECONDS = 60.0


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: float
    last_accessed: float


class LRUCache(Generic[V]):
    """Thread-safe key/value store bounded by ``max_size`` entries.

    Entries expire ``ttl_seconds`` after their last write. Expiry is lazy:
    stale entries are purged when ``get`` or ``has`` reads them, so ``size()``
    can include entries that are expired but not yet read.

    Keys are held least-recently-used first.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 0:
            raise ValueError(f"max_size must be >= 0, got {max_size}")
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> V | None:
        """Return the cached value and mark it most recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock()
            if now > entry.expires_at:
                del self._entries[key]
                return None
            entry.last_accessed = now
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            now = self._clock()
            expires_at = now + self._ttl
            entry = self._entries.get(key)
            if entry is not None:
                entry.value = value
                entry.expires_at = expires_at
                entry.last_accessed = now
                self._entries.move_to_end(key)
                return

            if len(self._entries) >= self._max_size:
                self._evict_lru()
            self._entries[key] = CacheEntry(value, expires_at, now)
            # A zero-capacity cache retains nothing.
            if len(self._entries) > self._max_size:
                self._evict_lru()

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def has(self, key: str) -> bool:
        """Expiry-checked membership test. Does not count as an access."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return False
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries = OrderedDict()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        """Resident keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return self.size()

    def _evict_lru(self) -> None:
        if self._entries:
            self._entries.popitem(last=False)
