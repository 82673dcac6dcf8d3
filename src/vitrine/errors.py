"""Error taxonomy for the resilience layer.

Storage and decode errors are raised by the low-level primitives and
converted to sentinel results at the component boundary. Session, network
and database errors are what the host's error boundary sees; they decide
whether an automatic recovery attempt is worthwhile.
"""

from __future__ import annotations

import traceback
from datetime import UTC, datetime
from typing import Any


class VitrineError(Exception):
    """Base class for resilience-layer errors."""


class StorageError(VitrineError):
    """Durable or ephemeral storage is unavailable, full or unreadable."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class SessionDecodeError(VitrineError):
    """A persisted session blob could not be decoded into a session."""


class SessionError(VitrineError):
    """The authentication session is missing, expired or rejected."""


class NetworkError(VitrineError):
    """A request could not reach its destination."""


class DatabaseError(VitrineError):
    """The hosted backend reported a data-layer failure."""


def is_session_error(error: BaseException | None) -> bool:
    return isinstance(error, SessionError) or (
        isinstance(error, Exception) and "session" in str(error).lower()
    )


def is_network_error(error: BaseException | None) -> bool:
    if isinstance(error, NetworkError):
        return True
    if not isinstance(error, Exception):
        return False
    message = str(error)
    return "Failed to fetch" in message or "Network request failed" in message


def is_database_error(error: BaseException | None) -> bool:
    if isinstance(error, DatabaseError):
        return True
    if not isinstance(error, Exception):
        return False
    message = str(error)
    return "database" in message or "PGRST" in message


def should_attempt_recovery(error: BaseException | None) -> bool:
    """Whether an automatic recovery attempt can plausibly fix this error."""
    return is_session_error(error) or is_network_error(error) or is_database_error(error)


def format_error_for_logging(error: object, path: str = "") -> dict[str, Any]:
    """Flatten an arbitrary error into a log-friendly dict."""
    details: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "type": type(error).__name__ if isinstance(error, BaseException) else "Unknown",
        "path": path,
        "message": str(error),
    }
    if isinstance(error, BaseException) and error.__traceback__ is not None:
        details["stack"] = "".join(traceback.format_tb(error.__traceback__))
    return details
