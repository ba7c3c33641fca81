"""
Debounce Scheduler

Collapses bursts of calls into a single trailing call. Each trigger
restarts the quiet period; only the arguments of the last trigger before
the period expires reach the action.

Usage:
    send_later = schedule(transmit, 300)
    send_later("h")
    send_later("hi")      # only transmit("hi") runs, 300 ms later
    send_later.cancel()   # drop anything still pending
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Trailing-edge debounce gate bound to one action.

    Triggering must happen on a running asyncio event loop. At most one
    timer task is pending at any time.

    Attributes:
        action: Callable invoked with the last trigger's arguments. May be
                a coroutine function, in which case it is awaited.
        delay_ms: Quiet period in milliseconds
    """

    def __init__(self, action: Callable[..., Any], delay_ms: int):
        if delay_ms < 0:
            raise ValueError("delay_ms must not be negative")
        self.action = action
        self.delay_ms = delay_ms
        self._task: Optional[asyncio.Task] = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        """Re-arm the timer with new arguments."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(
            self._fire_after_delay(args, kwargs)
        )

    @property
    def pending(self) -> bool:
        """Whether a timer is armed and has not fired yet."""
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Drop the pending timer, if any. The action will not run."""
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.debug("Debounced call cancelled")
            self._task = None

    async def _fire_after_delay(self, args: tuple, kwargs: dict) -> None:
        try:
            await asyncio.sleep(self.delay_ms / 1000.0)
        except asyncio.CancelledError:
            return

        # From here on the call belongs to the action; a later trigger
        # must not cancel it half way through.
        if self._task is asyncio.current_task():
            self._task = None

        try:
            result = self.action(*args, **kwargs)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Debounced action failed")


def schedule(action: Callable[..., Any], delay_ms: int) -> Debouncer:
    """
    Create a debounced trigger for an action.

    Args:
        action: Function or coroutine function to run
        delay_ms: Quiet period in milliseconds

    Returns:
        Debouncer: callable trigger; call it to (re)arm the timer
    """
    return Debouncer(action, delay_ms)
