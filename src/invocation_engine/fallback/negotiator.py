"""
Fallback negotiation.

When a model's quota is exhausted the retry loop asks the caller-supplied
fallback callback whether to continue against another model. The loop
never picks the destination model itself.
"""

import inspect
from collections.abc import Awaitable, Callable

import structlog

from invocation_engine.models.enums import AuthType
from invocation_engine.monitoring.metrics import fallback_negotiations_total

logger = structlog.get_logger(__name__)

# (auth_type, error) -> model id to retry against. May be sync or async.
# Only a non-empty string is an acceptance: the loop needs the model to
# continue with, so a bare True declines like None, False or "".
FallbackCallback = Callable[
    [AuthType | str | None, BaseException],
    "Awaitable[str | bool | None] | str | bool | None",
]


class FallbackNegotiator:
    """
    Wraps an ``on_persistent_429`` callback.

    Attributes:
        callback: Caller-supplied fallback callback (None = always decline)
    """

    def __init__(self, callback: FallbackCallback | None):
        self.callback = callback

    async def negotiate(
        self, auth_type: AuthType | str | None, error: BaseException
    ) -> str | None:
        """
        Ask the callback for a replacement model.

        Args:
            auth_type: Authentication mode of the caller, passed through
            error: Classified failure that triggered the fallback

        Returns:
            The new model id, or None if the fallback was declined
        """
        if self.callback is None:
            return None

        try:
            decision = self.callback(auth_type, error)
            if inspect.isawaitable(decision):
                decision = await decision
        except Exception as callback_error:
            logger.warning(
                "Fallback callback failed, treating as declined",
                error=str(callback_error),
                error_type=type(callback_error).__name__,
            )
            fallback_negotiations_total.labels(accepted="false").inc()
            return None

        if isinstance(decision, str) and decision:
            logger.info(
                "Fallback accepted",
                new_model=decision,
                error_type=type(error).__name__,
            )
            fallback_negotiations_total.labels(accepted="true").inc()
            return decision

        logger.info("Fallback declined", error_type=type(error).__name__)
        fallback_negotiations_total.labels(accepted="false").inc()
        return None
