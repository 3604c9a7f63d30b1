"""Periodic tick sources that drive a session's elapsed-time counter.

A clock calls one callback at a fixed interval between ``start`` and ``stop``.
Starting a running clock tears the old schedule down first, so a clock never
has more than one schedule alive.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional

TickCallback = Callable[[], None]


class Clock(ABC):
    @abstractmethod
    def start(self, on_tick: TickCallback) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @property
    @abstractmethod
    def running(self) -> bool:
        pass


class AsyncioClock(Clock):
    """Ticks from a task on the running event loop.

    Ticks are scheduled against the loop's start time rather than the previous
    tick, so slow callbacks do not accumulate drift.
    """

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def start(self, on_tick: TickCallback) -> None:
        self.stop()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(loop, on_tick))

    async def _run(self, loop: asyncio.AbstractEventLoop, on_tick: TickCallback):
        started = loop.time()
        n = 0
        while True:
            n += 1
            await asyncio.sleep(max(0.0, started + n * self.interval - loop.time()))
            on_tick()

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


class ManualClock(Clock):
    """Clock advanced by hand; used by tests and scripted sessions."""

    def __init__(self):
        self._on_tick: Optional[TickCallback] = None
        self.starts = 0
        self.stops = 0

    def start(self, on_tick: TickCallback) -> None:
        self.stop()
        self._on_tick = on_tick
        self.starts += 1

    def stop(self) -> None:
        if self._on_tick is not None:
            self._on_tick = None
            self.stops += 1

    @property
    def running(self) -> bool:
        return self._on_tick is not None

    def advance(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            if self._on_tick is None:
                return
            self._on_tick()
