"""Cache invalidation across every storage tier.

A full invalidation clears, in order:
1. The four in-memory caches
2. Cache-namespaced keys in durable and ephemeral storage
3. The background worker's cache (via an "invalidate" message)
4. Every platform-level response cache

Each step is guarded on its own: a failure is logged and recorded in the
returned report, and the remaining steps still run. ``clear_all`` never
raises, and running it again on an already-empty system is harmless.

Example:
    coordinator = InvalidationCoordinator(registry, durable, ephemeral)
    report = await coordinator.clear_all()
    if not report.ok:
        logger.warning(f"Partial invalidation: {report.errors}")
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

import aiofiles.os  # type: ignore[import-untyped]
import orjson

from vitrine.cache.registry import CacheRegistry
from vitrine.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)


class InvalidationType(str, Enum):
    """Type of worker cache invalidation."""

    INVALIDATE_CACHE = "INVALIDATE_CACHE"


@dataclass
class InvalidationMessage:
    """Message sent to the background worker."""

    type: InvalidationType = InvalidationType.INVALIDATE_CACHE
    version: str | None = None

    def to_bytes(self) -> bytes:
        """Serialize to JSON bytes."""
        return orjson.dumps({"type": self.type.value, "version": self.version})

    @classmethod
    def from_bytes(cls, data: bytes) -> "InvalidationMessage":
        """Deserialize from JSON bytes."""
        parsed = orjson.loads(data)
        return cls(type=InvalidationType(parsed["type"]), version=parsed.get("version"))


class WorkerChannel(Protocol):
    """Channel to a background worker that keeps its own cache."""

    @property
    def active(self) -> bool: ...

    async def post(self, message: InvalidationMessage) -> None: ...


class PlatformCaches(Protocol):
    """Named response caches owned by the platform (HTTP cache storage)."""

    async def names(self) -> list[str]: ...

    async def delete(self, name: str) -> bool: ...


class QueueWorkerChannel:
    """Worker channel backed by an asyncio queue.

    The worker task consumes encoded ``InvalidationMessage`` bytes from
    ``queue``; nothing is sent back.
    """

    def __init__(self, queue: asyncio.Queue[bytes] | None = None):
        self.queue: asyncio.Queue[bytes] = queue or asyncio.Queue()
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed

    def close(self) -> None:
        self._closed = True

    async def post(self, message: InvalidationMessage) -> None:
        if self._closed:
            raise RuntimeError("Worker channel is closed")
        self.queue.put_nowait(message.to_bytes())


class DirectoryResponseCaches:
    """Response caches stored as one directory per cache name.

    Layout: {base_path}/{cache_name}/...
    """

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).expanduser()

    async def names(self) -> list[str]:
        if not await aiofiles.os.path.isdir(self.base_path):
            return []
        entries = await aiofiles.os.listdir(self.base_path)
        names = []
        for entry in sorted(entries):
            if await aiofiles.os.path.isdir(self.base_path / entry):
                names.append(entry)
        return names

    async def delete(self, name: str) -> bool:
        path = self.base_path / name
        if not await aiofiles.os.path.isdir(path):
            return False
        await asyncio.to_thread(shutil.rmtree, path)
        return True


@dataclass
class InvalidationReport:
    """Outcome of one ``clear_all`` run."""

    memory_cleared: bool = False
    durable_keys_removed: int = 0
    ephemeral_keys_removed: int = 0
    worker_notified: bool | None = None  # None when no worker channel is active
    platform_caches_deleted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class InvalidationCoordinator:
    """Clears every cache tier, best effort and without raising."""

    def __init__(
        self,
        registry: CacheRegistry,
        durable: KeyValueStorage,
        ephemeral: KeyValueStorage | None = None,
        worker: WorkerChannel | None = None,
        platform_caches: PlatformCaches | None = None,
    ):
        self.registry = registry
        self.durable = durable
        self.ephemeral = ephemeral
        self.worker = worker
        self.platform_caches = platform_caches

    async def clear_all(self) -> InvalidationReport:
        """Clear all caches in every tier. Never raises."""
        report = InvalidationReport()

        try:
            self.registry.clear_memory()
            report.memory_cleared = True
        except Exception as e:
            report.errors.append(f"memory: {e}")
            logger.error(f"Failed to clear in-memory caches: {e}")

        prefix = self.registry.keys.storage_prefix
        report.durable_keys_removed = self._purge_storage("durable", self.durable, prefix, report)
        if self.ephemeral is not None:
            report.ephemeral_keys_removed = self._purge_storage(
                "ephemeral", self.ephemeral, prefix, report
            )

        await self._notify_worker(report)
        await self._delete_platform_caches(report)

        if report.ok:
            logger.info("All caches cleared successfully")
        else:
            logger.warning(f"Caches cleared with {len(report.errors)} failures")
        return report

    def _purge_storage(
        self,
        tier: str,
        storage: KeyValueStorage,
        prefix: str,
        report: InvalidationReport,
    ) -> int:
        try:
            return storage.remove_prefixed(prefix)
        except Exception as e:
            report.errors.append(f"{tier}: {e}")
            logger.error(f"Failed to purge {tier} storage: {e}")
            return 0

    async def _notify_worker(self, report: InvalidationReport) -> None:
        if self.worker is None:
            return
        try:
            if not self.worker.active:
                return
            await self.worker.post(InvalidationMessage(version=self.registry.keys.version))
            report.worker_notified = True
        except Exception as e:
            report.worker_notified = False
            report.errors.append(f"worker: {e}")
            logger.error(f"Error clearing worker cache: {e}")

    async def _delete_platform_caches(self, report: InvalidationReport) -> None:
        if self.platform_caches is None:
            return
        try:
            names = await self.platform_caches.names()
        except Exception as e:
            report.errors.append(f"platform: {e}")
            logger.error(f"Error listing platform caches: {e}")
            return

        for name in names:
            try:
                if await self.platform_caches.delete(name):
                    report.platform_caches_deleted.append(name)
            except Exception as e:
                report.errors.append(f"platform[{name}]: {e}")
                logger.error(f"Error clearing cache {name}: {e}")
