"""
Cancellation token shared between a caller and its retry loops.

The token is the single cancellation signal honored at the start of every
attempt, while the operation is in flight, and during backoff waits.
"""

import asyncio

from invocation_engine.retry.exceptions import RetryCancelledError


class CancellationToken:
    """
    One-shot cancellation signal backed by an ``asyncio.Event``.

    Cancel it from the event loop that runs the retry loops; cancelling
    twice keeps the first reason.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RetryCancelledError(reason=self.reason)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
