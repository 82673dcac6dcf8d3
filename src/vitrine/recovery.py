"""Error-boundary recovery policy.

When the host catches an error at its top level it can either offer the
generic reload action or try an in-place recovery first. In-place recovery
is only attempted for errors it can plausibly fix (session, network or
database failures), at most ``max_attempts`` times, and no more often than
once per ``cooldown`` seconds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vitrine.cache.invalidation import InvalidationCoordinator
from vitrine.clock import Clock, system_clock
from vitrine.errors import format_error_for_logging, should_attempt_recovery
from vitrine.session.manager import SessionManager

logger = logging.getLogger(__name__)

MAX_RECOVERY_ATTEMPTS = 3
RECOVERY_COOLDOWN = 5.0


@dataclass(frozen=True)
class RecoveryResult:
    attempted: bool
    recovered: bool
    reload_required: bool


class RecoveryGate:
    """Decides whether, and runs, an in-place recovery after an error."""

    def __init__(
        self,
        coordinator: InvalidationCoordinator,
        sessions: SessionManager,
        max_attempts: int = MAX_RECOVERY_ATTEMPTS,
        cooldown: float = RECOVERY_COOLDOWN,
        clock: Clock = system_clock,
    ):
        self.coordinator = coordinator
        self.sessions = sessions
        self.max_attempts = max_attempts
        self.cooldown = cooldown
        self.clock = clock
        self.attempts = 0
        self._last_attempt_at: float | None = None

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def can_attempt(self, error: BaseException | None) -> bool:
        if self.exhausted or not should_attempt_recovery(error):
            return False
        if self._last_attempt_at is None:
            return True
        return self.clock() - self._last_attempt_at >= self.cooldown

    async def recover(self, error: BaseException | None, path: str = "") -> RecoveryResult:
        """Try to recover from ``error`` in place.

        On success the last-error record is cleared and a reload is still
        required so the UI starts from clean caches.
        """
        if error is not None:
            logger.error(
                f"Caught error: {error}",
                extra={"error_details": format_error_for_logging(error, path)},
            )
            self.sessions.record_last_error(str(error), path)

        if not self.can_attempt(error):
            logger.info(f"Recovery not attempted for {type(error).__name__}")
            return RecoveryResult(attempted=False, recovered=False, reload_required=False)

        self.attempts += 1
        self._last_attempt_at = self.clock()
        logger.info(f"Recovery attempt {self.attempts}/{self.max_attempts}")

        await self.coordinator.clear_all()
        recovered = await self.sessions.attempt_recovery()
        if recovered:
            self.sessions.clear_last_error()
        else:
            logger.warning("Recovery failed")
        return RecoveryResult(attempted=True, recovered=recovered, reload_required=recovered)

    async def reload_action(self) -> RecoveryResult:
        """The generic "reload" action: purge every cache, then reload."""
        await self.coordinator.clear_all()
        return RecoveryResult(attempted=False, recovered=False, reload_required=True)
