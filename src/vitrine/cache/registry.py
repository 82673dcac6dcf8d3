"""The four in-memory caches and their typed helpers.

Each workload gets its own bounded store so a burst in one (say, many
asset fetches) cannot evict entries from another. All four share the TTL
and the key version held by ``CacheKeys``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from vitrine.cache.keys import CacheKeys
from vitrine.cache.store import DEFAULT_TTL, CacheStats, CacheStore
from vitrine.clock import Clock, system_clock

logger = logging.getLogger(__name__)

PAGE_CACHE_SIZE = 50
DATA_CACHE_SIZE = 100
ASSET_CACHE_SIZE = 30
APP_CACHE_SIZE = 50


class CacheRegistry:
    """Owns the page, data, asset and app caches."""

    def __init__(
        self,
        keys: CacheKeys | None = None,
        ttl: float = DEFAULT_TTL,
        page_size: int = PAGE_CACHE_SIZE,
        data_size: int = DATA_CACHE_SIZE,
        asset_size: int = ASSET_CACHE_SIZE,
        app_size: int = APP_CACHE_SIZE,
        clock: Clock = system_clock,
    ):
        self.keys = keys or CacheKeys()
        self.pages: CacheStore[Any] = CacheStore(page_size, ttl, name="page", clock=clock)
        self.data: CacheStore[Any] = CacheStore(data_size, ttl, name="data", clock=clock)
        self.assets: CacheStore[str] = CacheStore(asset_size, ttl, name="asset", clock=clock)
        self.apps: CacheStore[Any] = CacheStore(app_size, ttl, name="app", clock=clock)

    def stores(self) -> Iterator[CacheStore[Any]]:
        yield self.pages
        yield self.data
        yield self.assets
        yield self.apps

    # -------------------------------------------------------------------------
    # Typed helpers (all keys namespaced by the current version)
    # -------------------------------------------------------------------------

    def cache_page(self, path: str, page: Any) -> None:
        self.pages.set(self.keys.namespaced(path), page)

    def get_cached_page(self, path: str) -> Any | None:
        return self.pages.get(self.keys.namespaced(path))

    def cache_data(self, key: str, data: Any, max_age: float | None = None) -> None:
        """Cache arbitrary data, optionally expiring sooner than the shared TTL."""
        self.data.set(self.keys.namespaced(key), data, ttl=max_age)

    def get_cached_data(self, key: str) -> Any | None:
        return self.data.get(self.keys.namespaced(key))

    def cache_asset(self, url: str, content: str) -> None:
        self.assets.set(self.keys.namespaced(url), content)

    def get_cached_asset(self, url: str) -> str | None:
        return self.assets.get(self.keys.namespaced(url))

    def cache_app(self, app_id: str, app: Any) -> None:
        self.apps.set(self.keys.namespaced(app_id), app)

    def get_cached_app(self, app_id: str) -> Any | None:
        return self.apps.get(self.keys.namespaced(app_id))

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    def clear_app_cache(self) -> None:
        self.apps.clear()
        logger.info("App cache cleared")

    def clear_memory(self) -> None:
        """Clear all four stores."""
        for store in self.stores():
            store.clear()

    def bump_version(self, new_version: str) -> None:
        """Orphan every cached entry by switching the key version.

        Stores are not touched; old entries age out through TTL or eviction.
        """
        previous = self.keys.bump(new_version)
        logger.info(f"Cache version bumped from {previous} to {new_version}")

    def stats(self) -> list[CacheStats]:
        return [store.stats() for store in self.stores()]
