"""Shared helpers for CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from vitrine.cache.invalidation import DirectoryResponseCaches, InvalidationCoordinator
from vitrine.cache.keys import CacheKeys
from vitrine.cache.registry import CacheRegistry
from vitrine.config import settings
from vitrine.fault import FaultStateManager
from vitrine.session.persistence import SessionPersistence
from vitrine.session.state import SessionStateStore
from vitrine.storage.file import FileStorage

StorageOption = typer.Option(
    None,
    "--storage",
    "-s",
    help="Durable storage file (defaults to VITRINE_STORAGE_PATH)",
)


@dataclass
class OfflineComponents:
    """The parts of a context that work without an auth backend."""

    storage: FileStorage
    keys: CacheKeys
    invalidation: InvalidationCoordinator
    fault: FaultStateManager
    persistence: SessionPersistence


def build_components(storage_path: Path | None) -> OfflineComponents:
    storage = FileStorage(storage_path or settings.storage_path)
    keys = CacheKeys(prefix=settings.cache_key_prefix, version=settings.cache_version)
    registry = CacheRegistry(keys=keys, ttl=settings.cache_ttl_seconds)
    platform_caches = (
        DirectoryResponseCaches(settings.response_cache_dir)
        if settings.response_cache_dir
        else None
    )
    invalidation = InvalidationCoordinator(registry, storage, platform_caches=platform_caches)
    return OfflineComponents(
        storage=storage,
        keys=keys,
        invalidation=invalidation,
        fault=FaultStateManager(storage, invalidation, flag_key=keys.fault_flag),
        persistence=SessionPersistence(
            storage,
            SessionStateStore(),
            keys=keys,
            lifetime=settings.session_lifetime_seconds,
        ),
    )
