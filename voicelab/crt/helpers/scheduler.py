"""
Cancelable phase timers for the trial engine.

The engine is single-threaded: every timer callback, recognizer event and
participant action runs on the same loop, one at a time. Two schedulers are
provided:

  ManualScheduler  — a virtual clock advanced explicitly (tests, simulation)
  AsyncioScheduler — backed by a running asyncio event loop
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable


class TimerHandle:
    def __init__(self, deadline_ms: float, callback: Callable[[], None]):
        self.deadline_ms = deadline_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    def now_ms(self) -> float:
        raise NotImplementedError

    def call_later(self, delay_ms: float, callback: Callable[[], None]):
        """Run *callback* after *delay_ms*. Returns a handle with ``cancel()``."""
        raise NotImplementedError


class ManualScheduler(Scheduler):
    """Virtual clock. Timers only fire inside ``advance()``."""

    def __init__(self, start_ms: float = 0):
        self._now = start_ms
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._now + max(delay_ms, 0), callback)
        heapq.heappush(self._queue, (handle.deadline_ms, next(self._sequence), handle))
        return handle

    def advance(self, ms: float) -> int:
        """
        Move the clock forward by *ms*, firing due timers in deadline order.

        Timers scheduled by a callback fire in the same call if they fall due
        before the new time. Returns the number of callbacks run.
        """
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, deadline)
            if handle.cancelled:
                continue
            handle.fired = True
            handle.callback()
            fired += 1
        self._now = target
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if handle.active)


class AsyncioScheduler(Scheduler):
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()

    def now_ms(self) -> float:
        return self._loop.time() * 1000

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(delay_ms, 0) / 1000, callback)
