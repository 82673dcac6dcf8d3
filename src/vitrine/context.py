"""Application root for the resilience layer.

``ResilienceContext`` builds and owns every component: caches, storage
tiers, fault manager, session state and session manager. The host creates
one at startup and hands it (or its parts) to consumers; nothing in this
package keeps process-global state, so tests and multi-tenant hosts can
run several contexts side by side.

Example:
    context = ResilienceContext.from_settings(settings)
    result = await context.boot()
    if result.reload_required:
        restart_ui()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vitrine.cache.invalidation import (
    DirectoryResponseCaches,
    InvalidationCoordinator,
    PlatformCaches,
    WorkerChannel,
)
from vitrine.cache.keys import CacheKeys
from vitrine.cache.registry import CacheRegistry
from vitrine.clock import Clock, system_clock
from vitrine.fault import FaultStateManager
from vitrine.recovery import RecoveryGate
from vitrine.session.backend import AuthBackend, HttpAuthBackend
from vitrine.session.manager import SessionManager
from vitrine.session.persistence import SessionPersistence
from vitrine.session.refresh import DEFAULT_REFRESH_INTERVAL, Sleep
from vitrine.session.state import SessionState, SessionStateStore
from vitrine.storage.base import KeyValueStorage
from vitrine.storage.file import FileStorage
from vitrine.storage.memory import MemoryStorage

if TYPE_CHECKING:
    from vitrine.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BootResult:
    """What the host must do after ``boot``."""

    reload_required: bool
    session_valid: bool


class ResilienceContext:
    """Owns the cache, fault and session components of one application."""

    def __init__(
        self,
        backend: AuthBackend,
        durable: KeyValueStorage | None = None,
        ephemeral: KeyValueStorage | None = None,
        keys: CacheKeys | None = None,
        cache_ttl: float = 300.0,
        cache_sizes: dict[str, int] | None = None,
        session_lifetime: float = 24 * 60 * 60.0,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        worker: WorkerChannel | None = None,
        platform_caches: PlatformCaches | None = None,
        recovery_max_attempts: int = 3,
        recovery_cooldown: float = 5.0,
        clock: Clock = system_clock,
        sleep: Sleep | None = None,
    ):
        self.keys = keys or CacheKeys()
        self.durable = durable if durable is not None else MemoryStorage()
        self.ephemeral = ephemeral if ephemeral is not None else MemoryStorage()
        self.backend = backend

        sizes = cache_sizes or {}
        self.caches = CacheRegistry(
            keys=self.keys,
            ttl=cache_ttl,
            clock=clock,
            **{f"{name}_size": size for name, size in sizes.items()},
        )
        self.invalidation = InvalidationCoordinator(
            self.caches,
            self.durable,
            self.ephemeral,
            worker=worker,
            platform_caches=platform_caches,
        )
        self.fault = FaultStateManager(
            self.durable, self.invalidation, flag_key=self.keys.fault_flag
        )

        self.session_store = SessionStateStore(clock=clock)
        self.persistence = SessionPersistence(
            self.durable,
            self.session_store,
            keys=self.keys,
            lifetime=session_lifetime,
            clock=clock,
        )
        self.sessions = SessionManager(
            backend,
            self.persistence,
            refresh_interval=refresh_interval,
            sleep=sleep,
        )
        self.recovery = RecoveryGate(
            self.invalidation,
            self.sessions,
            max_attempts=recovery_max_attempts,
            cooldown=recovery_cooldown,
            clock=clock,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        backend: AuthBackend | None = None,
        worker: WorkerChannel | None = None,
    ) -> "ResilienceContext":
        """Build a context from configuration.

        Without an explicit backend, ``settings.auth_url`` must be set.
        """
        if backend is None:
            if not settings.auth_url:
                raise ValueError("auth_url must be configured when no backend is given")
            backend = HttpAuthBackend(
                settings.auth_url,
                api_key=settings.auth_api_key,
                timeout=settings.auth_timeout_seconds,
            )

        platform_caches = (
            DirectoryResponseCaches(settings.response_cache_dir)
            if settings.response_cache_dir
            else None
        )
        return cls(
            backend,
            durable=FileStorage(settings.storage_path),
            keys=CacheKeys(prefix=settings.cache_key_prefix, version=settings.cache_version),
            cache_ttl=settings.cache_ttl_seconds,
            cache_sizes={
                "page": settings.page_cache_size,
                "data": settings.data_cache_size,
                "asset": settings.asset_cache_size,
                "app": settings.app_cache_size,
            },
            session_lifetime=settings.session_lifetime_seconds,
            refresh_interval=settings.session_refresh_interval_seconds,
            worker=worker,
            platform_caches=platform_caches,
            recovery_max_attempts=settings.recovery_max_attempts,
            recovery_cooldown=settings.recovery_cooldown_seconds,
        )

    @property
    def session_state(self) -> SessionState:
        """Read-only snapshot of the current session state."""
        return self.session_store.state

    async def boot(self, install_handlers: bool = True) -> BootResult:
        """Run the boot sequence.

        1. Recover from a faulted previous run (purges all caches)
        2. Install the uncaught-error hooks
        3. Validate the session

        When a fault recovery ran, the host must reload before mounting the UI;
        session validation is left to the reloaded run.
        """
        if await self.fault.recover_if_faulted():
            return BootResult(reload_required=True, session_valid=False)

        if install_handlers:
            self.fault.install_handlers()

        session_valid = await self.sessions.validate()
        logger.info(f"Boot complete, session valid: {session_valid}")
        return BootResult(reload_required=False, session_valid=session_valid)

    async def shutdown(self) -> None:
        """Stop background renewal, remove hooks and close the backend."""
        self.sessions.shutdown()
        self.fault.uninstall_handlers()
        close = getattr(self.backend, "close", None)
        if close is not None:
            await close()
