"""Recurring background session renewal.

One task per application context. Starting it again stops the previous
loop first, so there is never more than one loop waiting to tick. Stopping
never aborts a tick that is already talking to the backend. Ticks run at a
fixed interval with no backoff; a failed tick is logged and the next one
runs on schedule.

The sleep function is injectable so tests can step the loop without real
timers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Renewal interval (5 minutes)
DEFAULT_REFRESH_INTERVAL = 300.0

Sleep = Callable[[float], Awaitable[None]]
Tick = Callable[[], Awaitable[None]]


class RefreshTask:
    """Runs ``tick`` every ``interval`` seconds until cancelled."""

    def __init__(
        self,
        tick: Tick,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        sleep: Sleep = asyncio.sleep,
        name: str = "session-refresh",
    ):
        self.tick = tick
        self.interval = interval
        self.name = name
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._sleeping: set[asyncio.Task[None]] = set()
        self._generation = 0
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """(Re)start the loop, stopping any previous one.

        Needs a running event loop; without one nothing is scheduled and
        False is returned.
        """
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, {self.name} not scheduled")
            return False

        self._task = loop.create_task(self._run(self._generation), name=self.name)
        logger.debug(f"Scheduled {self.name} every {self.interval}s")
        return True

    def cancel(self) -> None:
        """Stop the loop.

        A loop waiting for its next tick is cancelled at once. A tick already
        inside a backend call is left to finish and the loop exits after it;
        callers drop its result through the session epoch.
        """
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and task in self._sleeping and not task.done():
            task.cancel()

    async def run_once(self) -> None:
        """Run a single tick, logging instead of raising on failure."""
        self.ticks += 1
        try:
            await self.tick()
        except Exception as e:
            logger.error(f"{self.name} tick failed: {e}")

    async def _run(self, generation: int) -> None:
        task = asyncio.current_task()
        while generation == self._generation:
            self._sleeping.add(task)
            try:
                await self._sleep(self.interval)
            finally:
                self._sleeping.discard(task)
            if generation != self._generation:
                return
            await self.run_once()
