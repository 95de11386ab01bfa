"""
Deterministic timer queue

Delayed callbacks are entries of (deadline, seq, handle) on a heap keyed
to a monotonic millisecond clock that only moves when advance() is called.
"""

import heapq
import itertools
import logging
from typing import Callable, List, Tuple

logger = logging.getLogger('canefarm.sim.timers')


class TimerHandle:
    """Cancel token for a scheduled callback"""

    __slots__ = ("name", "deadline", "callback", "cancelled", "fired")

    def __init__(self, name: str, deadline: int, callback: Callable[[], None]):
        self.name = name
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        return f"TimerHandle(name={self.name}, deadline={self.deadline}, active={self.active})"


class TimerQueue:
    """
    Monotonic clock with cancellable delayed callbacks

    Callbacks run inside advance(), in deadline order (ties in scheduling
    order). While a callback runs, `now` equals its deadline, so timers it
    schedules are relative to the moment it fired and fire within the same
    advance() if they fall inside the window.
    """

    def __init__(self, now_ms: int = 0):
        self._now = now_ms
        self._heap: List[Tuple[int, int, TimerHandle]] = []
        self._seq = itertools.count()

    @property
    def now(self) -> int:
        return self._now

    def schedule(self, delay_ms: int, callback: Callable[[], None], name: str = "timer") -> TimerHandle:
        """
        Schedule a callback

        Args:
            delay_ms: Delay from the current clock value (must be >= 0)
            callback: Zero-argument callable
            name: Label used in logs

        Returns:
            TimerHandle that can cancel the callback
        """
        if delay_ms < 0:
            raise ValueError(f"Timer delay must not be negative, got {delay_ms}")
        handle = TimerHandle(name, self._now + int(delay_ms), callback)
        heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))
        logger.debug("Scheduled %s at t=%d", name, handle.deadline)
        return handle

    def advance(self, elapsed_ms: int) -> int:
        """
        Move the clock forward, firing every entry that falls due

        Args:
            elapsed_ms: Milliseconds to advance (must be >= 0)

        Returns:
            Number of callbacks fired
        """
        if elapsed_ms < 0:
            raise ValueError(f"Elapsed time must not be negative, got {elapsed_ms}")
        target = self._now + int(elapsed_ms)
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self._now = deadline
            handle.fired = True
            logger.debug("Firing %s at t=%d", handle.name, deadline)
            handle.callback()
            fired += 1
        self._now = target
        return fired

    def cancel_all(self):
        """Cancel every pending entry"""
        for _, _, handle in self._heap:
            handle.cancel()
        count = len(self._heap)
        self._heap.clear()
        if count:
            logger.debug("Cancelled %d pending timers", count)

    def pending(self) -> int:
        """Number of entries still waiting to fire"""
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)
