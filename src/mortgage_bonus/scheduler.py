"""Cooperative one-shot timers.

Callbacks never fire on their own: the owner of the queue calls
``run_due()`` from its event loop (the CLI does so before each command),
so every callback runs on the caller's thread, between two user actions.
The clock is injectable so tests can move time explicitly.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TimerHandle:
    """Cancellation token for a scheduled callback."""

    __slots__ = ("deadline", "_callback", "_cancelled", "_fired")

    def __init__(self, deadline: float, callback: Callable[[], None]) -> None:
        self.deadline = deadline
        self._callback = callback
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        self._cancelled = True

    def _fire(self) -> None:
        self._fired = True
        self._callback()


class TimerQueue:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or time.monotonic
        # Heap entries: (deadline, sequence, handle); sequence keeps FIFO order on ties
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule *callback* to run once, *delay* seconds from now."""
        handle = TimerHandle(self._clock() + delay, callback)
        heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))
        logger.debug("Timer scheduled for t=%.3f", handle.deadline)
        return handle

    def run_due(self, now: Optional[float] = None) -> int:
        """Fire every non-cancelled callback whose deadline has passed.

        Returns the number of callbacks fired.
        """
        if now is None:
            now = self._clock()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle._fire()
            fired += 1
        if fired:
            logger.debug("Fired %d timer(s) at t=%.3f", fired, now)
        return fired

    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return sum(1 for _, _, h in self._heap if h.active)

    def cancel_all(self) -> None:
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()
