"""Polling for evidence that an asynchronous external operation finished.

Some engine operations (Unity's ``-createProject``) do not report completion
through a clean exit, so the pipeline watches the filesystem instead.  The
loop always ends at the deadline: the sleep before each re-check is clamped
to the time remaining.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable


class WaitOutcome(str, Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


async def await_evidence(
    predicate: Callable[[], bool],
    interval_seconds: float,
    timeout_seconds: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> WaitOutcome:
    """Poll *predicate* until it is true or *timeout_seconds* pass.

    Args:
        predicate: Cheap, side-effect-free check (usually a path probe).
        interval_seconds: Seconds between checks.
        timeout_seconds: Hard ceiling on total waiting time.
        clock: Monotonic clock, injectable for tests.
        sleep: Async sleep, injectable for tests.

    Returns:
        ``WaitOutcome.COMPLETED`` as soon as the predicate holds, otherwise
        ``WaitOutcome.TIMED_OUT``.  Timing out is not an error; the caller
        decides what it means.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")

    deadline = clock() + max(timeout_seconds, 0)

    while True:
        if predicate():
            return WaitOutcome.COMPLETED

        remaining = deadline - clock()
        if remaining <= 0:
            return WaitOutcome.TIMED_OUT
        await sleep(min(interval_seconds, remaining))


def paths_exist(*paths: Path) -> Callable[[], bool]:
    """Predicate that holds once every path in *paths* exists."""

    def _check() -> bool:
        return all(Path(p).exists() for p in paths)

    return _check
