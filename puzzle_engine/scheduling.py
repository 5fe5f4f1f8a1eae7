"""Deferred, cancelable scheduling primitives.

The engine only needs ``call_later(delay, callback)`` returning a handle
with ``cancel()``. ManualScheduler runs calls when drained, in enqueue
order; AsyncioScheduler hands them to an event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle: ...


class ScheduledCall:
    """A queued callback owned by a ManualScheduler."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """FIFO scheduler drained explicitly by its owner.

    Delays are recorded but only honoured when ``run_pending`` is given a
    sleep function.
    """

    def __init__(self) -> None:
        self._queue: deque[ScheduledCall] = deque()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(delay, callback)
        self._queue.append(call)
        return call

    @property
    def pending(self) -> int:
        return sum(1 for call in self._queue if not call.cancelled)

    def run_next(self, sleep: Callable[[float], None] | None = None) -> bool:
        """Run the oldest live call.

        Returns:
            False if nothing was left to run.
        """
        while self._queue:
            call = self._queue.popleft()
            if call.cancelled:
                continue
            if sleep is not None and call.delay > 0:
                sleep(call.delay)
                # The call may have been cancelled while we slept.
                if call.cancelled:
                    continue
            call.callback()
            return True
        return False

    def run_pending(
        self,
        sleep: Callable[[float], None] | None = None,
        max_steps: int = 1000,
    ) -> int:
        """Drain the queue, including calls scheduled while draining.

        Args:
            sleep: Optional function called with each call's delay first.
            max_steps: Upper bound on calls run, guarding runaway loops.

        Returns:
            Number of callbacks run.
        """
        ran = 0
        while ran < max_steps and self.run_next(sleep):
            ran += 1
        if ran >= max_steps and self.pending:
            logger.warning("Stopped draining after %d calls, %d still queued", ran, self.pending)
        return ran

    def clear(self) -> None:
        for call in self._queue:
            call.cancel()
        self._queue.clear()


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
