"""Tests for the application context and boot sequence."""

import sys
from pathlib import Path

import pytest

from vitrine.cache.keys import CacheKeys
from vitrine.config import Settings
from vitrine.context import BootResult, ResilienceContext
from vitrine.session.backend import HttpAuthBackend, InMemoryAuthBackend
from vitrine.session.models import Session
from vitrine.storage.file import FileStorage
from vitrine.storage.memory import MemoryStorage


@pytest.fixture
def backend() -> InMemoryAuthBackend:
    return InMemoryAuthBackend()


@pytest.fixture
def context(backend, durable, keys, clock, step_sleep):
    context = ResilienceContext(backend, durable=durable, keys=keys, clock=clock, sleep=step_sleep)
    yield context
    context.sessions.shutdown()
    context.fault.uninstall_handlers()


class TestBoot:
    """boot()"""

    @pytest.mark.asyncio
    async def test_healthy_boot_with_session(
        self, context: ResilienceContext, backend: InMemoryAuthBackend, session: Session
    ) -> None:
        """A healthy boot validates the session."""
        backend.session = session

        result = await context.boot(install_handlers=False)

        assert result == BootResult(reload_required=False, session_valid=True)
        assert context.session_state.session == session
        assert context.session_state.is_loading is False

    @pytest.mark.asyncio
    async def test_healthy_boot_without_session(self, context: ResilienceContext) -> None:
        """No session is not an error."""
        result = await context.boot(install_handlers=False)

        assert result == BootResult(reload_required=False, session_valid=False)
        assert context.session_state.error is None

    @pytest.mark.asyncio
    async def test_faulted_boot_purges_and_requests_reload(
        self,
        context: ResilienceContext,
        backend: InMemoryAuthBackend,
        durable: MemoryStorage,
        keys: CacheKeys,
    ) -> None:
        """A faulted previous run forces a full purge and reload."""
        context.caches.cache_page("/", "stale")
        durable.set_item(keys.storage_key("catalog"), "stale")
        context.fault.mark_faulted()

        result = await context.boot()

        assert result == BootResult(reload_required=True, session_valid=False)
        assert context.caches.get_cached_page("/") is None
        assert durable.keys() == []
        assert context.fault.is_faulted() is False
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_boot_installs_fault_handlers(
        self, context: ResilienceContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Handlers are in place after boot and removed on shutdown."""
        original = sys.excepthook
        monkeypatch.setattr(sys, "excepthook", original)

        await context.boot()
        assert sys.excepthook is not original

        await context.shutdown()
        assert sys.excepthook is original

    @pytest.mark.asyncio
    async def test_session_survives_fault_recovery(
        self,
        context: ResilienceContext,
        backend: InMemoryAuthBackend,
        session: Session,
    ) -> None:
        """Cache purge leaves the persisted session for the reloaded run."""
        context.persistence.persist(session)
        context.fault.mark_faulted()

        await context.boot(install_handlers=False)

        assert context.persistence.recover() == session


class TestConstruction:
    """Wiring and configuration."""

    def test_contexts_are_independent(self, backend: InMemoryAuthBackend) -> None:
        """Two contexts share no state."""
        first = ResilienceContext(backend)
        second = ResilienceContext(backend)

        first.caches.cache_data("k", "v")
        first.fault.mark_faulted()

        assert second.caches.get_cached_data("k") is None
        assert second.fault.is_faulted() is False

    def test_cache_sizes(self, backend: InMemoryAuthBackend) -> None:
        """Capacities can be overridden per store."""
        context = ResilienceContext(backend, cache_sizes={"page": 5, "app": 7})

        assert context.caches.pages.max_size == 5
        assert context.caches.apps.max_size == 7
        assert context.caches.data.max_size == 100

    def test_from_settings(self, tmp_path: Path) -> None:
        """Settings produce file storage and an HTTP backend."""
        settings = Settings(
            storage_path=str(tmp_path / "storage.json"),
            auth_url="https://auth.example.com",
            cache_version="2.0.0",
            page_cache_size=10,
            response_cache_dir=str(tmp_path / "responses"),
        )

        context = ResilienceContext.from_settings(settings)

        assert isinstance(context.durable, FileStorage)
        assert isinstance(context.backend, HttpAuthBackend)
        assert context.keys.version == "2.0.0"
        assert context.caches.pages.max_size == 10
        assert context.invalidation.platform_caches is not None

    def test_from_settings_requires_backend(self, tmp_path: Path) -> None:
        """Without auth_url a backend must be passed in."""
        settings = Settings(storage_path=str(tmp_path / "storage.json"), auth_url=None)

        with pytest.raises(ValueError, match="auth_url"):
            ResilienceContext.from_settings(settings)

        context = ResilienceContext.from_settings(settings, backend=InMemoryAuthBackend())
        assert isinstance(context.backend, InMemoryAuthBackend)
