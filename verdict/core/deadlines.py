"""Per-document deadlines for the suspending calls (extraction and retries).

A deadline is an absolute event-loop time, so the extraction phase and the
correction loop share one budget instead of each getting a fresh timeout.
"""

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


def deadline_after(timeout_seconds: float | None) -> float | None:
    """Absolute loop time `timeout_seconds` from now, or None for no deadline."""
    if timeout_seconds is None:
        return None
    return asyncio.get_running_loop().time() + timeout_seconds


def time_left(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return deadline - asyncio.get_running_loop().time()


async def run_before(awaitable: Awaitable[T], deadline: float | None) -> T:
    """Await `awaitable`, raising asyncio.TimeoutError once the deadline passes."""
    left = time_left(deadline)
    if left is None:
        return await awaitable
    if left <= 0:
        close = getattr(awaitable, "close", None)
        if close is not None:
            close()
        raise asyncio.TimeoutError("deadline already passed")
    return await asyncio.wait_for(awaitable, left)
