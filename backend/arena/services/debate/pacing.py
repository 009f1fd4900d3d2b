"""
Paced Clock — Interruptible delay between model calls.

WHAT THIS DOES:
The provider quota needs a fixed multi-second gap between turns, but a
user pressing "stop" should not have to wait out that gap. So instead of
one long sleep we sleep in short slices and look at the stop flag
between slices.

GRANULARITY:
poll_interval is the trade-off knob: smaller means faster reaction to a
stop, larger means fewer wakeups. 250ms is imperceptible to a user.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from arena.services.debate.errors import DebateCancelledError

DEFAULT_POLL_INTERVAL = 0.25


def raise_if_cancelled(should_cancel: Optional[Callable[[], bool]]) -> None:
    """Raise DebateCancelledError if a stop has been requested."""
    if should_cancel is not None and should_cancel():
        raise DebateCancelledError("Debate cancelled by user request.")


class PacedClock:
    """Sleeps for a fixed duration, returning early on cancellation."""

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.poll_interval = poll_interval
        self._sleep = sleep

    async def wait(
        self,
        duration: float,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> None:
        """
        Wait `duration` seconds, polling `should_cancel` every tick.

        Raises:
            DebateCancelledError: as soon as a stop is observed
        """
        elapsed = 0.0
        while elapsed < duration:
            raise_if_cancelled(should_cancel)
            step = min(self.poll_interval, duration - elapsed)
            await self._sleep(step)
            elapsed += step
        raise_if_cancelled(should_cancel)
