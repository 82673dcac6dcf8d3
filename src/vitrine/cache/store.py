"""Bounded in-memory cache with TTL expiry and approximate-LRU eviction.

Entries live in an insertion-ordered map. Reads and writes move an entry to
the newest end; overflow evicts from the oldest end. Because every access
touches, the oldest end is the least recently touched entry, but there is
no separate recency index: eviction is always "structurally oldest".

Expiry is lazy. An entry older than its TTL is removed when a lookup finds
it; ``purge_expired`` sweeps the whole store on demand.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

from vitrine.clock import Clock, system_clock

logger = logging.getLogger(__name__)

V = TypeVar("V")

# Shared TTL for all stores (5 minutes)
DEFAULT_TTL = 300.0


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and the time it was stored."""

    value: V
    stored_at: float
    ttl: float | None = None  # Per-entry override, capped by the store TTL


@dataclass
class CacheStats:
    """Counters for one store."""

    name: str
    size: int
    max_size: int
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class CacheStore(Generic[V]):
    """Key-value cache bounded by entry count and entry age.

    Invariant: ``len(store) <= max_size`` after every operation.
    """

    def __init__(
        self,
        max_size: int,
        ttl: float = DEFAULT_TTL,
        name: str = "cache",
        clock: Clock = system_clock,
    ):
        if max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {max_size}")
        self.name = name
        self.max_size = max_size
        self.ttl = ttl
        self.clock = clock
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def _is_expired(self, entry: CacheEntry[V], now: float) -> bool:
        ttl = self.ttl if entry.ttl is None else min(entry.ttl, self.ttl)
        # An entry aged exactly ttl is still fresh; expiry needs strictly older
        return now - entry.stored_at > ttl

    def get(self, key: str) -> V | None:
        """Return the cached value, or None if missing or expired.

        A hit moves the entry to the newest position.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._is_expired(entry, self.clock()):
            del self._entries[key]
            self._expirations += 1
            self._misses += 1
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        """Store a value at the newest position.

        When the store is full and ``key`` is new, the oldest entry is
        evicted first. ``ttl`` can shorten (never extend) this entry's life.
        """
        if key not in self._entries and len(self._entries) >= self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Evicted {evicted_key} from {self.name} cache")

        self._entries[key] = CacheEntry(value=value, stored_at=self.clock(), ttl=ttl)
        self._entries.move_to_end(key)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)
        return len(expired)

    def keys(self) -> list[str]:
        """Keys from oldest to newest, including not-yet-purged expired ones."""
        return list(self._entries)

    def stats(self) -> CacheStats:
        return CacheStats(
            name=self.name,
            size=len(self._entries),
            max_size=self.max_size,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            expirations=self._expirations,
        )

    def __contains__(self, key: object) -> bool:
        # Membership does not touch recency
        entry = self._entries.get(key) if isinstance(key, str) else None
        return entry is not None and not self._is_expired(entry, self.clock())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
