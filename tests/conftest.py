"""Global pytest configuration and fixtures."""

from __future__ import annotations

import asyncio

import pytest

from vitrine.cache.keys import CacheKeys
from vitrine.clock import ManualClock
from vitrine.session.models import Session, SessionUser
from vitrine.storage.memory import MemoryStorage


class StepSleep:
    """Async sleep replacement that blocks until ``release`` is called."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self._waiters: list[asyncio.Future[None]] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        await future

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def settle(self) -> None:
        """Let scheduled tasks run until they block again."""
        for _ in range(10):
            await asyncio.sleep(0)

    async def release(self) -> None:
        """Wake every pending sleeper and let the woken tasks run."""
        await self.settle()
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)
        self._waiters = [waiter for waiter in self._waiters if not waiter.done()]
        await self.settle()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def durable() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def keys() -> CacheKeys:
    return CacheKeys(prefix="vitrine", version="1.0.1")


@pytest.fixture
def step_sleep() -> StepSleep:
    return StepSleep()


@pytest.fixture
def session() -> Session:
    return Session(
        access_token="test-token",
        refresh_token="test-refresh",
        expires_at=1_700_003_600,
        expires_in=3600,
        user=SessionUser(id="test-user", email="test@example.com"),
    )
