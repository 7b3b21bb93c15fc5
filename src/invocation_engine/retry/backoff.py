"""
Backoff scheduling: exponential delay with jitter, and the cancellable wait.

All durations are milliseconds.
"""

import asyncio
import random

from invocation_engine.retry.cancellation import CancellationToken
from invocation_engine.retry.exceptions import RetryCancelledError

JITTER_MIN = 0.7
JITTER_MAX = 1.3


def exponential_delay(attempt: int, initial_delay_ms: float, max_delay_ms: float) -> float:
    """``min(initial * 2^(attempt-1), max)`` for a 1-based attempt number."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return min(initial_delay_ms * 2 ** (attempt - 1), max_delay_ms)


def compute_backoff_delay(
    attempt: int,
    initial_delay_ms: float,
    max_delay_ms: float,
    rng: random.Random | None = None,
) -> float:
    """
    Delay to wait after a failed attempt, before the next one.

    The capped exponential delay is scaled by a uniform factor in
    [0.7, 1.3] so concurrent callers do not retry in lockstep.

    Args:
        attempt: 1-based number of the attempt that just failed
        initial_delay_ms: Delay after the first failure (before jitter)
        max_delay_ms: Cap applied before jitter
        rng: Injectable Random instance for deterministic testing

    Returns:
        Jittered delay in milliseconds (never negative)
    """
    base = exponential_delay(attempt, initial_delay_ms, max_delay_ms)
    factor = (rng or random).uniform(JITTER_MIN, JITTER_MAX)
    return max(0.0, base * factor)


async def cancellable_delay(delay_ms: float, signal: CancellationToken | None = None) -> None:
    """
    Sleep for ``delay_ms``, resolving early into cancellation if ``signal`` fires.

    Raises:
        RetryCancelledError: The token was cancelled before or during the wait
    """
    seconds = max(0.0, delay_ms) / 1000
    if signal is None:
        await asyncio.sleep(seconds)
        return

    signal.raise_if_cancelled()
    try:
        await asyncio.wait_for(signal.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return
    raise RetryCancelledError(reason=signal.reason)
