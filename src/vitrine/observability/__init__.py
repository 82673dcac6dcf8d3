"""Observability module for Vitrine.

Provides structured logging with component and user context.
"""

from vitrine.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    component_var,
    configure_logging,
    session_epoch_var,
    user_id_var,
)

__all__ = [
    "configure_logging",
    "LogContext",
    "JsonFormatter",
    "ConsoleFormatter",
    "component_var",
    "user_id_var",
    "session_epoch_var",
]
