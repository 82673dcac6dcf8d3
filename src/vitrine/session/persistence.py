"""Session persistence and recovery.

A session is stored as two durable keys written together: the encoded
blob and an absolute expiry (epoch milliseconds, 24 hours after the last
persist). Recovery fails closed: anything other than a complete, unexpired,
well-formed pair tears the persisted session down and reports no session.

Every teardown bumps ``epoch``. Callers that start an awaited backend call
compare the epoch afterwards and drop results that arrive after a teardown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from vitrine.cache.keys import CacheKeys
from vitrine.clock import Clock, system_clock
from vitrine.errors import SessionDecodeError
from vitrine.session.codec import decode_session, encode_session
from vitrine.session.models import Session
from vitrine.session.refresh import RefreshTask
from vitrine.session.state import SessionStateStore
from vitrine.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

# Persisted sessions live for 24 hours after the last persist
DEFAULT_SESSION_LIFETIME = 24 * 60 * 60.0


class PersistOutcome(str, Enum):
    """Result of ``persist``."""

    PERSISTED = "persisted"
    CLEARED = "cleared"
    STORAGE_FAILED = "storage_failed"  # Session kept in memory only


class RecoverStatus(str, Enum):
    """Why ``recover`` did or did not produce a session."""

    RECOVERED = "recovered"
    MISSING = "missing"
    EXPIRED = "expired"
    CORRUPT = "corrupt"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class RecoverResult:
    status: RecoverStatus
    session: Session | None = None


class SessionPersistence:
    """Stores, reads and tears down the persisted session."""

    def __init__(
        self,
        storage: KeyValueStorage,
        state: SessionStateStore,
        keys: CacheKeys | None = None,
        lifetime: float = DEFAULT_SESSION_LIFETIME,
        clock: Clock = system_clock,
        refresh: RefreshTask | None = None,
    ):
        keys = keys or CacheKeys()
        self.storage = storage
        self.state = state
        self.blob_key = keys.session_blob
        self.expiry_key = keys.session_expiry
        self.lifetime = lifetime
        self.clock = clock
        self.refresh = refresh
        self.epoch = 0

    def persist(self, session: Session | None) -> PersistOutcome:
        """Store a session and (re)schedule renewal, or tear down on None."""
        if session is None:
            self.teardown()
            return PersistOutcome.CLEARED

        outcome = PersistOutcome.PERSISTED
        expires_at_ms = int((self.clock() + self.lifetime) * 1000)
        try:
            self.storage.set_item(self.blob_key, encode_session(session))
            self.storage.set_item(self.expiry_key, str(expires_at_ms))
        except Exception as e:
            outcome = PersistOutcome.STORAGE_FAILED
            logger.error(f"Failed to persist session: {e}")
            self._remove_keys()

        self.state.set_session(session)
        if self.refresh is not None:
            self.refresh.start()
        return outcome

    def recover(self) -> Session | None:
        """Return the persisted session, or None. Never raises."""
        return self.recover_with_status().session

    def recover_with_status(self) -> RecoverResult:
        try:
            blob = self.storage.get_item(self.blob_key)
            expiry = self.storage.get_item(self.expiry_key)
        except Exception as e:
            logger.error(f"Failed to read persisted session: {e}")
            return RecoverResult(RecoverStatus.STORAGE_ERROR)

        if not blob or not expiry:
            return RecoverResult(RecoverStatus.MISSING)

        try:
            expires_at_ms = int(expiry)
        except ValueError:
            logger.warning(f"Persisted session expiry is not a timestamp: {expiry!r}")
            self.teardown()
            return RecoverResult(RecoverStatus.CORRUPT)

        if self.clock() * 1000 > expires_at_ms:
            logger.info("Persisted session expired")
            self.teardown()
            return RecoverResult(RecoverStatus.EXPIRED)

        try:
            session = decode_session(blob)
        except SessionDecodeError as e:
            logger.error(f"Failed to recover session: {e}")
            self.teardown()
            return RecoverResult(RecoverStatus.CORRUPT)

        return RecoverResult(RecoverStatus.RECOVERED, session)

    def teardown(self) -> None:
        """Remove both keys, clear observable state and stop renewal."""
        self.epoch += 1
        self._remove_keys()
        self.state.clear()
        if self.refresh is not None:
            self.refresh.cancel()

    def _remove_keys(self) -> None:
        for key in (self.blob_key, self.expiry_key):
            try:
                self.storage.remove_item(key)
            except Exception as e:
                logger.error(f"Failed to remove {key}: {e}")
