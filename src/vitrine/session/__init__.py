"""Authentication session layer for Vitrine.

Wraps a hosted auth backend with:
- Persistence of the session across restarts (obfuscated, with expiry)
- Fail-closed recovery of the persisted session
- Validation against the backend and scheduled background renewal
- An observable state store for consumers
"""

from vitrine.session.backend import (
    AuthBackend,
    AuthBackendError,
    AuthErrorKind,
    HttpAuthBackend,
    InMemoryAuthBackend,
    classify_auth_error,
)
from vitrine.session.codec import decode_session, encode_session
from vitrine.session.manager import SessionManager
from vitrine.session.models import Session, SessionUser
from vitrine.session.persistence import (
    PersistOutcome,
    RecoverResult,
    RecoverStatus,
    SessionPersistence,
)
from vitrine.session.refresh import RefreshTask
from vitrine.session.state import LastError, SessionState, SessionStateStore

__all__ = [
    # Models
    "Session",
    "SessionUser",
    "encode_session",
    "decode_session",
    # Backend
    "AuthBackend",
    "AuthBackendError",
    "AuthErrorKind",
    "HttpAuthBackend",
    "InMemoryAuthBackend",
    "classify_auth_error",
    # State
    "LastError",
    "SessionState",
    "SessionStateStore",
    # Persistence and management
    "PersistOutcome",
    "RecoverResult",
    "RecoverStatus",
    "SessionPersistence",
    "RefreshTask",
    "SessionManager",
]
