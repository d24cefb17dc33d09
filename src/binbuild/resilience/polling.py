"""Fixed-interval, deadline-bounded polling."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from binbuild.core.exceptions import PollTimeoutError


async def poll_until(
    condition: Callable[[], Awaitable[bool]],
    *,
    interval: float,
    timeout: float,
) -> None:
    """Await *condition* until it returns ``True`` or *timeout* elapses.

    The first attempt runs immediately; later attempts are spaced *interval*
    seconds apart.  The last sleep is clipped to the deadline, so the loop
    never overruns *timeout* by more than one attempt.  Exceptions raised by
    *condition* stop the loop and propagate.

    Raises:
        PollTimeoutError: If the deadline passes before *condition* holds.
    """
    deadline = time.monotonic() + timeout
    while True:
        if await condition():
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise PollTimeoutError(
                f"timed out waiting for the condition after {timeout}s"
            )
        await asyncio.sleep(min(interval, remaining))
