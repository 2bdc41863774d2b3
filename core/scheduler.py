"""
Timer abstraction shared by the display state machines.

The promotion rotation engine and the auto-scroll controller only ask for
"call me back in N seconds". They run on the asyncio loop in production and
on a virtual clock (`ManualScheduler`) in tests.
"""
import asyncio
import heapq
import itertools
from typing import Any, Callable, List, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Interface for anything that can run callbacks later."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        """Runs `callback` after `delay` seconds. Returns a cancellable handle."""
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


class _ManualHandle:
    __slots__ = ("when", "callback", "cancelled")

    def __init__(self, when: float, callback: Callable[[], Any]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-clock scheduler. Nothing runs until `advance()` is called.

    Callbacks due at the same instant run in the order they were scheduled.
    Callbacks may schedule further callbacks; those run within the same
    `advance()` if they fall inside the window.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualHandle]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> None:
        """Moves the clock forward, firing every callback that becomes due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = when
            handle.callback()
        self._now = target

    def run_until_idle(self, limit: float = 3600.0) -> None:
        """Fires pending callbacks until none remain (bounded by `limit` seconds)."""
        deadline = self._now + limit
        while self._queue and self._queue[0][0] <= deadline:
            self.advance(self._queue[0][0] - self._now)
