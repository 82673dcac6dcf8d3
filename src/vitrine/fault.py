"""Persisted fault detection and boot-time recovery.

A run that dies from an uncaught error leaves a flag in durable storage.
The next boot sees the flag, purges every cache tier, clears the flag and
tells the host to reload so nothing cached by the faulted run survives.

States: HEALTHY (flag absent) and FAULTED (flag present). Only
``recover_if_faulted`` moves FAULTED back to HEALTHY.

Example:
    fault = FaultStateManager(durable, coordinator)
    fault.install_handlers()

    if await fault.recover_if_faulted():
        request_reload()
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from enum import Enum
from types import TracebackType
from typing import Any

from vitrine.cache.invalidation import InvalidationCoordinator
from vitrine.cache.keys import CacheKeys
from vitrine.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

FAULT_FLAG_VALUE = "true"


class FaultState(str, Enum):
    """Persisted process health."""

    HEALTHY = "healthy"
    FAULTED = "faulted"


class FaultStateManager:
    """Reads and writes the persisted fault flag."""

    def __init__(
        self,
        storage: KeyValueStorage,
        coordinator: InvalidationCoordinator,
        flag_key: str | None = None,
    ):
        self.storage = storage
        self.coordinator = coordinator
        self.flag_key = flag_key or CacheKeys().fault_flag
        self._previous_excepthook: Any = None
        self._previous_thread_hook: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous_loop_handler: Any = None
        self._installed = False

    @property
    def state(self) -> FaultState:
        return FaultState.FAULTED if self.is_faulted() else FaultState.HEALTHY

    def mark_faulted(self) -> None:
        """Persist the faulted flag. Never raises."""
        try:
            self.storage.set_item(self.flag_key, FAULT_FLAG_VALUE)
        except Exception as e:
            logger.error(f"Failed to persist faulted state: {e}")

    def is_faulted(self) -> bool:
        """Read the flag; absent or unreadable counts as healthy."""
        try:
            return self.storage.get_item(self.flag_key) == FAULT_FLAG_VALUE
        except Exception as e:
            logger.error(f"Failed to read faulted state: {e}")
            return False

    def clear(self) -> bool:
        """Remove the flag. Returns False if it could not be removed."""
        try:
            self.storage.remove_item(self.flag_key)
        except Exception as e:
            logger.error(f"Failed to clear faulted state: {e}")
            return False
        return True

    async def recover_if_faulted(self) -> bool:
        """Purge all caches and clear the flag if the last run faulted.

        Returns True when a recovery ran; the host must then reload. A flag
        that cannot be removed yields False, so no reload is requested.
        """
        if not self.is_faulted():
            return False

        logger.warning("Previous run ended in a faulted state, clearing all caches")
        await self.coordinator.clear_all()
        if not self.clear():
            logger.error("Faulted flag could not be cleared, skipping reload")
            return False
        logger.info("Recovered from faulted state")
        return True

    # -------------------------------------------------------------------------
    # Top-level error hooks
    # -------------------------------------------------------------------------

    def install_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Mark the process faulted on any uncaught error.

        Hooks ``sys.excepthook``, ``threading.excepthook`` and, when a loop is
        given or running, the loop's exception handler (unretrieved task
        exceptions). Previous handlers still run afterwards.
        """
        if self._installed:
            return

        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._excepthook

        self._previous_thread_hook = threading.excepthook
        threading.excepthook = self._thread_excepthook

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        if loop is not None:
            self._loop = loop
            self._previous_loop_handler = loop.get_exception_handler()
            loop.set_exception_handler(self._loop_exception_handler)

        self._installed = True
        logger.debug("Installed fault handlers")

    def uninstall_handlers(self) -> None:
        if not self._installed:
            return
        sys.excepthook = self._previous_excepthook
        threading.excepthook = self._previous_thread_hook
        if self._loop is not None:
            self._loop.set_exception_handler(self._previous_loop_handler)
            self._loop = None
        self._installed = False

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        logger.error(f"Uncaught error: {exc}")
        self.mark_faulted()
        self._previous_excepthook(exc_type, exc, tb)

    def _thread_excepthook(self, args: threading.ExceptHookArgs) -> None:
        logger.error(f"Uncaught error in thread {args.thread}: {args.exc_value}")
        self.mark_faulted()
        self._previous_thread_hook(args)

    def _loop_exception_handler(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        logger.error(f"Unhandled async error: {context.get('exception') or context.get('message')}")
        self.mark_faulted()
        if self._previous_loop_handler is not None:
            self._previous_loop_handler(loop, context)
        else:
            loop.default_exception_handler(context)
