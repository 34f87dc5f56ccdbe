"""
Scheduled workflow transitions with explicit cancellation.

Auto-advance between steps is a timer, not an ambient timeout: whoever
schedules it keeps the ``CancellationToken`` and cancels it when the user
moves on. ``VirtualScheduler`` runs on a manual clock so tests can step time
deterministically; ``AsyncioScheduler`` uses the running event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, List, Protocol, Tuple


class CancellationToken:
    """Handle for a scheduled callback."""

    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self._cancelled = False
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class SchedulerProtocol(Protocol):
    """Protocol describing the timer behaviour needed by the workflow."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> CancellationToken:
        """Run ``callback`` after ``delay`` seconds unless cancelled."""


class VirtualScheduler:
    """
    Scheduler driven by a manual clock.

    Nothing runs until ``advance`` moves the clock past a callback's due time.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, Callable[[], None], CancellationToken]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> CancellationToken:
        token = CancellationToken()
        heapq.heappush(
            self._queue,
            (self.now + max(delay, 0.0), next(self._counter), callback, token),
        )
        return token

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward and run every callback that became due.

        Returns:
            Number of callbacks executed
        """
        target = self.now + seconds
        executed = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, callback, token = heapq.heappop(self._queue)
            self.now = due
            if token.cancelled:
                continue
            callback()
            executed += 1

        self.now = target
        return executed

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[3].cancelled)


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later`` on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> CancellationToken:
        loop = asyncio.get_running_loop()
        handle = loop.call_later(max(delay, 0.0), callback)
        return CancellationToken(on_cancel=handle.cancel)
