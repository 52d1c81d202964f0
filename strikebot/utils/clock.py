"""
Clock abstraction and fixed-interval scheduling.

Everything time-dependent (trend windows, periodic polls, reconnect delays)
goes through a Clock so tests can drive it deterministically.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional, Protocol

from .logger import get_logger

logger = get_logger("clock")


class Clock(Protocol):
    """Source of wall time and sleeping."""

    def now(self) -> float:
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """Real clock backed by time.time and asyncio.sleep."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class PeriodicTask:
    """
    Runs an async callback every `interval_seconds` until stopped.

    Errors raised by the callback are logged and the schedule continues.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        clock: Optional[Clock] = None,
        run_immediately: bool = False
    ):
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.clock = clock or SystemClock()
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        if self.run_immediately:
            await self._fire()
        while self._running:
            await self.clock.sleep(self.interval_seconds)
            if not self._running:
                break
            await self._fire()

    async def _fire(self) -> None:
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Periodic task {self.name} failed: {e}")
