"""
Policy-driven fallback handler.

Builds an ``on_persistent_429`` callback that walks the configured policy
chain, picks the first model the availability service still considers
usable, and optionally asks the user how to proceed.
"""

import inspect
from collections.abc import Awaitable, Callable

import structlog

from invocation_engine.availability.policy_catalog import PolicyCatalog
from invocation_engine.availability.policy_helpers import build_fallback_policy_context
from invocation_engine.availability.service import ModelAvailabilityService
from invocation_engine.config import Settings
from invocation_engine.models.enums import AuthType, FallbackIntent

logger = structlog.get_logger(__name__)

# (failed_model, fallback_model, error) -> intent; may be sync or async
IntentHandler = Callable[
    [str, str, BaseException],
    "Awaitable[FallbackIntent | str | None] | FallbackIntent | str | None",
]


class PolicyFallbackHandler:
    """
    Fallback callback backed by the policy catalog and availability service.

    Only the interactive personal-login auth mode may switch models; other
    auth modes always decline.

    Attributes:
        service: Shared availability service
        catalog: Policy catalog holding the fallback chain
        active_model: Model currently used by the session
        intent_handler: Optional user prompt deciding how to fall back
        wraps_around: Also consider models upstream of the failed one
    """

    def __init__(
        self,
        service: ModelAvailabilityService,
        catalog: PolicyCatalog,
        active_model: str,
        intent_handler: IntentHandler | None = None,
        wraps_around: bool = False,
    ):
        self.service = service
        self.catalog = catalog
        self.active_model = active_model
        self.intent_handler = intent_handler
        self.wraps_around = wraps_around

    async def __call__(
        self, auth_type: AuthType | str | None, error: BaseException
    ) -> str | None:
        if auth_type != AuthType.LOGIN_WITH_GOOGLE:
            logger.debug("Fallback not offered for auth type", auth_type=str(auth_type))
            return None

        failed_model = self.active_model
        chain = self.catalog.resolve_chain()
        context = build_fallback_policy_context(
            chain,
            failed_model,
            wraps_around=self.wraps_around,
        )
        selection = self.service.select_first_available(
            [policy.model for policy in context.candidates]
        )
        fallback_model = selection.selected_model
        if fallback_model is None:
            # Nothing usable downstream: offer the last-resort model, which
            # may be the failed model itself
            last_resort = next((policy for policy in chain if policy.is_last_resort), None)
            if last_resort is None:
                logger.warning(
                    "No fallback model available",
                    failed_model=failed_model,
                    skipped=list(selection.skipped),
                )
                return None
            fallback_model = last_resort.model
            logger.info(
                "Falling back to last-resort model",
                failed_model=failed_model,
                fallback_model=fallback_model,
                skipped=list(selection.skipped),
            )

        intent = FallbackIntent.RETRY_ALWAYS
        if self.intent_handler is not None:
            try:
                decision = self.intent_handler(failed_model, fallback_model, error)
                if inspect.isawaitable(decision):
                    decision = await decision
                if decision is None:
                    return None
                intent = FallbackIntent(decision)
            except Exception as handler_error:
                logger.warning(
                    "Fallback intent handler failed",
                    error=str(handler_error),
                    failed_model=failed_model,
                )
                return None

        if intent == FallbackIntent.STOP:
            logger.info("Fallback stopped by user", failed_model=failed_model)
            return None

        if selection.attempts == 1:
            self.service.consume_sticky_attempt(fallback_model)

        if intent == FallbackIntent.RETRY_ALWAYS:
            self.active_model = fallback_model

        logger.info(
            "Falling back to model",
            failed_model=failed_model,
            fallback_model=fallback_model,
            intent=intent.value,
        )
        return fallback_model


def build_fallback_handler(
    service: ModelAvailabilityService,
    catalog: PolicyCatalog,
    settings: Settings,
    intent_handler: IntentHandler | None = None,
) -> PolicyFallbackHandler:
    """Fallback handler for the session's default model, configured from settings."""
    return PolicyFallbackHandler(
        service,
        catalog,
        active_model=settings.DEFAULT_MODEL,
        intent_handler=intent_handler,
        wraps_around=settings.WRAP_FALLBACK_CHAIN,
    )
