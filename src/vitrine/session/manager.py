"""Session validation, recovery and scheduled renewal.

``SessionManager`` is the only writer of the observable session state. It
asks the auth backend for the live session, falls back to the persisted
one, and keeps the session fresh with a background ``RefreshTask``.

Failure policy:
- Terminal token failures (``invalid_token``) tear the session down; the
  error is recorded after the teardown so consumers can still see it.
- Anything else is recorded in ``state.error`` and the session is kept,
  so the next validate or refresh tick can retry.

Backend calls are awaited without any lock, so ``validate`` and refresh
ticks can interleave. A result that comes back after a teardown happened
during the call is discarded instead of re-persisting a dead session.
"""

from __future__ import annotations

import logging

from vitrine.observability.logging import LogContext
from vitrine.session.backend import AuthBackend, AuthBackendError
from vitrine.session.models import Session
from vitrine.session.persistence import SessionPersistence
from vitrine.session.refresh import DEFAULT_REFRESH_INTERVAL, RefreshTask, Sleep
from vitrine.session.state import SessionState, SessionStateStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Validates, recovers, refreshes and clears the auth session."""

    def __init__(
        self,
        backend: AuthBackend,
        persistence: SessionPersistence,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        sleep: Sleep | None = None,
    ):
        self.backend = backend
        self.persistence = persistence
        self.store: SessionStateStore = persistence.state
        if sleep is None:
            self.refresh = RefreshTask(self._refresh_tick, interval=refresh_interval)
        else:
            self.refresh = RefreshTask(self._refresh_tick, interval=refresh_interval, sleep=sleep)
        persistence.refresh = self.refresh

    @property
    def state(self) -> SessionState:
        return self.store.state

    def _stale(self, epoch: int, operation: str) -> bool:
        if self.persistence.epoch != epoch:
            logger.info(f"Discarding {operation} result: session was cleared meanwhile")
            return True
        return False

    def _persist(self, session: Session) -> None:
        with LogContext(user_id=session.user_id):
            self.persistence.persist(session)
            logger.info("Session persisted")

    def persist(self, session: Session | None) -> None:
        if session is None:
            self.persistence.persist(None)
        else:
            self._persist(session)

    def recover(self) -> Session | None:
        return self.persistence.recover()

    async def validate(self) -> bool:
        """Establish the session from the backend or persisted state.

        Returns True when a session is in place. Never raises.
        """
        self.store.set_loading(True)
        try:
            with LogContext(component="session", session_epoch=self.persistence.epoch):
                return await self._validate()
        except Exception as e:
            logger.error(f"Session validation failed: {e}")
            self.store.set_error(str(e) or "Session validation failed")
            return False
        finally:
            self.store.set_loading(False)

    async def _validate(self) -> bool:
        epoch = self.persistence.epoch
        try:
            session = await self.backend.get_current_session()
        except AuthBackendError as e:
            logger.error(f"Session validation error: {e.message}")
            if e.mentions_auth:
                self.persistence.teardown()
            self.store.set_error(e.message)
            return False

        if self._stale(epoch, "get_current_session"):
            return False

        if session is not None:
            self._persist(session)
            return True

        return await self._restore_persisted()

    async def _restore_persisted(self) -> bool:
        recovered = self.persistence.recover()
        if recovered is None:
            return False

        epoch = self.persistence.epoch
        try:
            restored = await self.backend.set_session(recovered)
        except AuthBackendError as e:
            logger.error(f"Session restore failed: {e.message}")
            if e.is_invalid_token:
                self.persistence.teardown()
            self.store.set_error(e.message)
            return False
        except Exception as e:
            logger.error(f"Session restore error: {e}")
            self.store.set_error(str(e) or "Session refresh failed")
            return False

        if self._stale(epoch, "set_session"):
            return False

        self._persist(restored)
        return True

    def schedule_refresh(self) -> bool:
        """(Re)start the background renewal loop."""
        return self.refresh.start()

    async def _refresh_tick(self) -> None:
        epoch = self.persistence.epoch
        try:
            current = await self.backend.get_current_session()
            if current is None:
                return
            refreshed = await self.backend.refresh_session()
        except AuthBackendError as e:
            logger.error(f"Session refresh failed: {e.message}")
            if e.is_invalid_token:
                self.persistence.teardown()
            self.store.set_error(e.message)
            return
        except Exception as e:
            logger.error(f"Session refresh error: {e}")
            self.store.set_error(str(e) or "Session refresh failed")
            return

        if self._stale(epoch, "refresh_session"):
            return
        self._persist(refreshed)

    def clear_session(self) -> None:
        """Stop renewal, drop the persisted session and clear state."""
        self.persistence.teardown()
        logger.info("Session cleared")

    async def attempt_recovery(self) -> bool:
        """Use a persisted session if one is intact, else run ``validate``.

        Never raises; ``is_loading`` is false afterwards.
        """
        self.store.set_loading(True)
        try:
            if self.persistence.recover() is not None:
                return True
            return await self.validate()
        except Exception as e:
            logger.error(f"Recovery attempt failed: {e}")
            self.store.set_error(str(e) or "Recovery failed")
            return False
        finally:
            self.store.set_loading(False)

    def record_last_error(self, message: str, path: str = "") -> None:
        self.store.set_last_error(message, path)

    def clear_last_error(self) -> None:
        self.store.clear_last_error()

    def shutdown(self) -> None:
        self.refresh.cancel()
