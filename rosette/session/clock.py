"""
Clock - Injectable time source for timers.

Move timeouts and disconnect grace periods are scheduled through a Clock so
tests can advance time by hand instead of sleeping.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
import itertools
import time
from typing import Callable


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self):
        pass


class Clock(ABC):
    """Time source plus one-shot timer scheduling."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds unless cancelled."""
        pass


class _LoopTimer(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self):
        self._handle.cancel()


class SystemClock(Clock):
    """Monotonic time; timers run on the running asyncio event loop."""

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay, callback):
        loop = asyncio.get_running_loop()
        return _LoopTimer(loop.call_later(delay, callback))


@dataclass(eq=False)
class _ManualTimer(TimerHandle):
    when: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self):
        self.cancelled = True


class ManualClock(Clock):
    """
    Clock driven by advance().

    Due callbacks run synchronously inside advance(), in due-time order.
    Cancelled timers never run.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay, callback):
        timer = _ManualTimer(self._now + max(delay, 0.0), next(self._seq), callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        """Number of timers that are still armed."""
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float):
        target = self._now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self._now = timer.when
            timer.callback()
        self._timers = [t for t in self._timers if not t.cancelled]
        self._now = target
