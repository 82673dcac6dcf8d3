"""Cache layer for Vitrine.

Provides bounded in-memory caches with a shared version namespace:
- Four stores (pages, data, assets, apps) with TTL and LRU-style eviction
- Versioned keys: bumping the version orphans every older entry
- Full invalidation across memory, storage, worker and platform caches
"""

from vitrine.cache.invalidation import (
    DirectoryResponseCaches,
    InvalidationCoordinator,
    InvalidationMessage,
    InvalidationReport,
    InvalidationType,
    PlatformCaches,
    QueueWorkerChannel,
    WorkerChannel,
)
from vitrine.cache.keys import CacheKeys
from vitrine.cache.registry import CacheRegistry
from vitrine.cache.store import DEFAULT_TTL, CacheEntry, CacheStats, CacheStore

__all__ = [
    # Core cache
    "CacheKeys",
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "CacheRegistry",
    "DEFAULT_TTL",
    # Invalidation
    "InvalidationCoordinator",
    "InvalidationMessage",
    "InvalidationReport",
    "InvalidationType",
    "WorkerChannel",
    "PlatformCaches",
    "QueueWorkerChannel",
    "DirectoryResponseCaches",
]
