"""Timer scheduling for the capture controller."""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    """A cancellable one-shot timer."""

    @abstractmethod
    def cancel(self) -> None:
        pass


class Scheduler(ABC):
    """Clock and one-shot timers, expressed in milliseconds."""

    @abstractmethod
    def now_ms(self) -> int:
        pass

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        pass


class _AsyncioTimer(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now_ms(self) -> int:
        return int(self.loop.time() * 1000)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioTimer(self.loop.call_later(delay_ms / 1000.0, callback))


class ManualTimer(TimerHandle):
    def __init__(self, due_ms: int):
        self.due_ms = due_ms
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Virtual clock for deterministic tests and offline replays.

    Time only moves when ``advance`` is called; due timers fire in order and
    may schedule further timers that fire within the same advance.
    """

    def __init__(self, start_ms: int = 0):
        self._now = start_ms
        self._counter = itertools.count()
        self._queue: List[Tuple[int, int, ManualTimer, Callable[[], None]]] = []

    def now_ms(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = ManualTimer(self._now + max(0, delay_ms))
        heapq.heappush(self._queue, (timer.due_ms, next(self._counter), timer, callback))
        return timer

    def advance(self, delta_ms: int) -> None:
        target = self._now + delta_ms
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, timer, callback = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = due_ms
            callback()
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer, _ in self._queue if not timer.cancelled)
