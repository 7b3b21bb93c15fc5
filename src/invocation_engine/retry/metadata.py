"""
Attempt tracking.

This module defines the Attempt dataclass handed to ``on_retry`` observers
before every backoff wait.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Attempt:
    """
    A single failed invocation try inside one retry loop.

    Attributes:
        number: 1-based attempt number against the current model
        error: Failure raised by the attempt (classified when possible)
        delay_ms: Wait scheduled before the next attempt
        model: Model targeted by the attempt, when known
    """

    number: int
    error: BaseException | None
    delay_ms: float
    model: str | None = None

    def __post_init__(self) -> None:
        """Validate attempt invariants."""
        if self.number < 1:
            raise ValueError("number must be >= 1")

        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
