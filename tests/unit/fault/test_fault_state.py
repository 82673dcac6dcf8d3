"""Tests for persisted fault detection and recovery."""

import asyncio
import sys
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from vitrine.cache.invalidation import InvalidationCoordinator, InvalidationReport
from vitrine.cache.keys import CacheKeys
from vitrine.cache.registry import CacheRegistry
from vitrine.errors import StorageError
from vitrine.fault import FaultState, FaultStateManager
from vitrine.storage.memory import MemoryStorage


@pytest.fixture
def coordinator() -> MagicMock:
    coordinator = MagicMock(spec=InvalidationCoordinator)
    coordinator.clear_all = AsyncMock(return_value=InvalidationReport(memory_cleared=True))
    return coordinator


@pytest.fixture
def fault(durable: MemoryStorage, coordinator: MagicMock, keys: CacheKeys) -> FaultStateManager:
    return FaultStateManager(durable, coordinator, flag_key=keys.fault_flag)


class TestFaultFlag:
    """Reading and writing the flag."""

    def test_initially_healthy(self, fault: FaultStateManager) -> None:
        """No flag means healthy."""
        assert fault.is_faulted() is False
        assert fault.state == FaultState.HEALTHY

    def test_mark_faulted(self, fault: FaultStateManager, durable: MemoryStorage) -> None:
        """Marking persists the flag."""
        fault.mark_faulted()

        assert fault.is_faulted() is True
        assert fault.state == FaultState.FAULTED
        assert durable.get_item("vitrine_faulted") == "true"

    def test_clear(self, fault: FaultStateManager) -> None:
        """Clearing returns to healthy."""
        fault.mark_faulted()
        fault.clear()

        assert fault.is_faulted() is False

    def test_flag_survives_new_manager(
        self, durable: MemoryStorage, coordinator: MagicMock, keys: CacheKeys
    ) -> None:
        """The flag is durable, not in-memory."""
        FaultStateManager(durable, coordinator, flag_key=keys.fault_flag).mark_faulted()

        assert FaultStateManager(durable, coordinator, flag_key=keys.fault_flag).is_faulted()

    def test_mark_faulted_never_raises(self, coordinator: MagicMock) -> None:
        """A failed write is swallowed."""
        storage = MemoryStorage(quota=1)
        fault = FaultStateManager(storage, coordinator)

        fault.mark_faulted()

        assert fault.is_faulted() is False

    def test_unreadable_storage_counts_as_healthy(self, coordinator: MagicMock) -> None:
        """Read failure defaults to healthy."""
        storage = MemoryStorage()
        fault = FaultStateManager(storage, coordinator)
        fault.mark_faulted()
        storage.available = False

        assert fault.is_faulted() is False

    def test_other_values_are_healthy(
        self, fault: FaultStateManager, durable: MemoryStorage
    ) -> None:
        """Only the exact flag value counts."""
        durable.set_item("vitrine_faulted", "false")

        assert fault.is_faulted() is False


class TestRecovery:
    """recover_if_faulted behaviour."""

    @pytest.mark.asyncio
    async def test_not_faulted_is_noop(
        self, fault: FaultStateManager, coordinator: MagicMock
    ) -> None:
        """Healthy state returns False and clears nothing."""
        assert await fault.recover_if_faulted() is False
        coordinator.clear_all.assert_not_awaited()
        assert fault.is_faulted() is False

    @pytest.mark.asyncio
    async def test_recover_clears_caches_and_flag(
        self, fault: FaultStateManager, coordinator: MagicMock
    ) -> None:
        """Faulted state triggers a full clear and resets the flag."""
        fault.mark_faulted()

        assert await fault.recover_if_faulted() is True

        coordinator.clear_all.assert_awaited_once()
        assert fault.is_faulted() is False

    @pytest.mark.asyncio
    async def test_recover_twice(self, fault: FaultStateManager, coordinator: MagicMock) -> None:
        """Second recovery is a no-op."""
        fault.mark_faulted()
        await fault.recover_if_faulted()

        assert await fault.recover_if_faulted() is False
        assert coordinator.clear_all.await_count == 1

    @pytest.mark.asyncio
    async def test_recover_with_real_coordinator(
        self, durable: MemoryStorage, keys: CacheKeys
    ) -> None:
        """End to end: caches emptied, flag cleared."""
        registry = CacheRegistry(keys=keys)
        registry.cache_data("k", "v")
        durable.set_item(keys.storage_key("k"), "v")
        fault = FaultStateManager(
            durable, InvalidationCoordinator(registry, durable), flag_key=keys.fault_flag
        )
        fault.mark_faulted()

        assert await fault.recover_if_faulted() is True

        assert registry.get_cached_data("k") is None
        assert durable.keys() == []


class TestHandlers:
    """Uncaught-error hooks."""

    def test_excepthook_marks_faulted(
        self, fault: FaultStateManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An uncaught exception sets the flag and chains to the previous hook."""
        previous = MagicMock()
        monkeypatch.setattr(sys, "excepthook", previous)
        fault.install_handlers()
        try:
            error = RuntimeError("boom")
            sys.excepthook(RuntimeError, error, None)
        finally:
            fault.uninstall_handlers()

        assert fault.is_faulted() is True
        previous.assert_called_once()
        assert sys.excepthook is previous

    def test_thread_excepthook_marks_faulted(
        self, fault: FaultStateManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An uncaught thread exception sets the flag."""
        previous = MagicMock()
        monkeypatch.setattr(threading, "excepthook", previous)
        fault.install_handlers()
        try:
            thread = threading.Thread(target=lambda: 1 / 0)
            thread.start()
            thread.join()
        finally:
            fault.uninstall_handlers()

        assert fault.is_faulted() is True
        previous.assert_called_once()

    @pytest.mark.asyncio
    async def test_loop_exception_handler_marks_faulted(self, fault: FaultStateManager) -> None:
        """Unhandled async errors reported to the loop set the flag."""
        loop = asyncio.get_running_loop()
        previous = MagicMock()
        loop.set_exception_handler(previous)
        fault.install_handlers()
        try:
            loop.call_exception_handler(
                {"message": "Task exception was never retrieved", "exception": ValueError("x")}
            )
        finally:
            fault.uninstall_handlers()

        assert fault.is_faulted() is True
        previous.assert_called_once()
        assert loop.get_exception_handler() is previous
        loop.set_exception_handler(None)

    def test_install_is_idempotent(
        self, fault: FaultStateManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Installing twice keeps the original hook for restore."""
        original = MagicMock()
        monkeypatch.setattr(sys, "excepthook", original)

        fault.install_handlers()
        fault.install_handlers()
        fault.uninstall_handlers()

        assert sys.excepthook is original


class ReadOnlyStorage(MemoryStorage):
    """Storage that can be read but refuses removals."""

    def remove_item(self, key: str) -> None:
        raise StorageError("Storage is read-only", key=key)


class TestStuckFlag:
    """A flag that cannot be removed."""

    @pytest.mark.asyncio
    async def test_no_reload_when_flag_cannot_be_cleared(
        self, coordinator: MagicMock, keys: CacheKeys
    ) -> None:
        """Recovery still purges caches but never asks for a reload."""
        storage = ReadOnlyStorage()
        fault = FaultStateManager(storage, coordinator, flag_key=keys.fault_flag)
        fault.mark_faulted()

        results = [await fault.recover_if_faulted() for _ in range(3)]

        assert results == [False, False, False]
        assert fault.is_faulted() is True
        assert coordinator.clear_all.await_count == 3

    def test_clear_reports_failure(self, coordinator: MagicMock) -> None:
        """clear() returns False instead of raising."""
        fault = FaultStateManager(ReadOnlyStorage(), coordinator)

        assert fault.clear() is False
