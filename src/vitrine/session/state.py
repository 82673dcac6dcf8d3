"""Observable session state.

One store per application context. Only the session layer writes to it;
everything else reads ``store.state`` or subscribes for changes. Each
mutation swaps in a new immutable snapshot, so a reader never sees a
half-applied update. Concurrent writers are last-write-wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from vitrine.clock import Clock, system_clock
from vitrine.session.models import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LastError:
    """The most recent error reported by the host's error boundary."""

    timestamp: float
    message: str
    path: str


@dataclass(frozen=True)
class SessionState:
    session: Session | None = None
    error: str | None = None
    is_loading: bool = True
    last_error: LastError | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None


Listener = Callable[[SessionState], None]


class SessionStateStore:
    """Holds the current ``SessionState`` and notifies subscribers."""

    def __init__(self, clock: Clock = system_clock):
        self._state = SessionState()
        self._listeners: list[Listener] = []
        self.clock = clock

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                logger.error(f"Session state listener failed: {e}")

    def set_session(self, session: Session | None) -> None:
        self._update(session=session)

    def set_error(self, error: str | None) -> None:
        self._update(error=error)

    def set_loading(self, is_loading: bool) -> None:
        self._update(is_loading=is_loading)

    def set_last_error(self, message: str, path: str) -> None:
        self._update(last_error=LastError(timestamp=self.clock(), message=message, path=path))

    def clear_last_error(self) -> None:
        self._update(last_error=None)

    def clear(self) -> None:
        """Drop the session and the recorded error; keep loading flag and last error."""
        self._update(session=None, error=None)
