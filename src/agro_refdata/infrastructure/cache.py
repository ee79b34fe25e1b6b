"""In-memory TTL cache for reference-data payloads.

Usage example:
    from agro_refdata.infrastructure.cache import TtlCache

    cache = TtlCache(max_size=100, default_ttl_seconds=300)
    cache.set("api/paises:all", [{"id": 1}])
    cached = cache.get("api/paises:all")
    cache.invalidate("api/paises:")
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing_extensions import override

from ..protocols import Cache, Clock


@dataclass(frozen=True)
class CacheEntry:
    """A stored payload; replaced as a whole, never mutated."""

    key: str
    payload: object
    stored_at: float
    ttl_seconds: float

    def is_valid(self, now: float) -> bool:
        return now <= self.stored_at + self.ttl_seconds


@dataclass(frozen=True)
class CacheStats:
    entries: int
    hits: int
    misses: int
    evictions: int
    expirations: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


@dataclass
class TtlCache(Cache):
    """Bounded keyed store with lazy TTL expiry and insertion-order eviction.

    Expired entries are dropped when they are next looked up; there is no
    background sweeper. When a new key is inserted into a full store the
    oldest inserted entry is evicted. All mutation happens under one lock.
    """

    max_size: int = 100
    default_ttl_seconds: float = 300.0
    clock: Clock = time.monotonic
    _entries: OrderedDict[str, CacheEntry] = field(default_factory=OrderedDict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _hits: int = field(default=0, init=False)
    _misses: int = field(default=0, init=False)
    _evictions: int = field(default=0, init=False)
    _expirations: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError("max_size must be at least 1.")
        if self.default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive.")

    @override
    def get(self, key: str) -> object | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_valid(self.clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None
            self._hits += 1
            return entry.payload

    @override
    def set(self, key: str, value: object, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive.")
        entry = CacheEntry(key=key, payload=value, stored_at=self.clock(), ttl_seconds=ttl)
        with self._lock:
            if key in self._entries:
                # Replacement refreshes the insertion position.
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
                self._evictions += 1
            self._entries[key] = entry

    @override
    def invalidate(self, pattern: str, *, prefix: bool = True) -> int:
        with self._lock:
            if prefix:
                doomed = [key for key in self._entries if key.startswith(pattern)]
            else:
                doomed = [pattern] if pattern in self._entries else []
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    @override
    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @override
    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.is_valid(self.clock())

    def purge_expired(self) -> int:
        """Drop every expired entry now; returns the number removed."""
        with self._lock:
            now = self.clock()
            doomed = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
            for key in doomed:
                del self._entries[key]
            self._expirations += len(doomed)
            return len(doomed)

    def keys(self) -> list[str]:
        """Return stored keys, oldest first (expired entries included until purged)."""
        with self._lock:
            return list(self._entries)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
