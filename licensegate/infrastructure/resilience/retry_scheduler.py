"""Cancellable scheduler for deferred retries.

Computes the backoff delay for an attempt from a `RetryPolicy` and arranges
a single callback on the running event loop. A cancelled handle never
invokes its callback, even when cancellation races with expiry.
"""

import asyncio
import logging
from typing import Callable, Optional

from licensegate.domain.models.verification import RetryPolicy

logger = logging.getLogger(__name__)


class TimerHandle:
    """One scheduled retry. Fires at most once."""

    def __init__(self, attempt: int, delay: float, callback: Callable[[], None]):
        self.attempt = attempt
        self.delay = delay
        self._callback = callback
        self._loop_handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._loop_handle is not None:
            self._loop_handle.cancel()
        logger.debug(f"Retry timer for attempt {self.attempt} cancelled.")

    def _fire(self) -> None:
        # The loop may already have dequeued this callback when cancel() ran.
        if self._cancelled or self._fired:
            return
        self._fired = True
        logger.debug(f"Retry timer for attempt {self.attempt} fired after {self.delay:.2f}s.")
        self._callback()


class RetryScheduler:
    """Schedules retries on the event loop that calls `schedule`."""

    def __init__(self, policy: Optional[RetryPolicy] = None):
        self.policy = policy or RetryPolicy()

    def delay_for(self, attempt: int) -> float:
        return self.policy.delay(attempt)

    def schedule(self, attempt: int, callback: Callable[[], None]) -> TimerHandle:
        """Arranges `callback` to run once after delay(attempt).

        Must be called from within a running event loop.

        Args:
            attempt: 0-based attempt number the delay is computed for.
            callback: Plain callable run on the loop.

        Returns:
            A handle that can be cancelled.
        """
        delay = self.delay_for(attempt)
        handle = TimerHandle(attempt, delay, callback)
        loop = asyncio.get_running_loop()
        handle._loop_handle = loop.call_later(delay, handle._fire)
        logger.debug(f"Retry scheduled for attempt {attempt} in {delay:.2f}s.")
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()
