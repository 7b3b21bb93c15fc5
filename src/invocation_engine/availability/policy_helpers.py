"""
Availability policy engine.

Maps classified failures to failure kinds and applies the resulting state
transition through the injected availability service. The engine holds no
availability state of its own.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from invocation_engine.availability.model_policy import (
    AvailabilityContext,
    AvailabilityService,
    ModelPolicy,
)
from invocation_engine.availability.policy_catalog import PolicyCatalog
from invocation_engine.errors.exceptions import (
    ModelNotFoundError,
    RetryableQuotaError,
    TerminalQuotaError,
)
from invocation_engine.models.enums import AvailabilityOutcome, FailureKind
from invocation_engine.monitoring.metrics import availability_transitions_total

logger = structlog.get_logger(__name__)

# Reason recorded on the service for each failure kind
FAILURE_REASONS: dict[FailureKind, str] = {
    FailureKind.TERMINAL: "quota",
    FailureKind.TRANSIENT: "capacity",
    FailureKind.NOT_FOUND: "not_found",
    FailureKind.UNKNOWN: "unknown",
}


def classify_failure_kind(error: object) -> FailureKind:
    if isinstance(error, TerminalQuotaError):
        return FailureKind.TERMINAL
    if isinstance(error, RetryableQuotaError):
        return FailureKind.TRANSIENT
    if isinstance(error, ModelNotFoundError):
        return FailureKind.NOT_FOUND
    return FailureKind.UNKNOWN


def apply_state_transition(
    context: AvailabilityContext, kind: FailureKind
) -> AvailabilityOutcome | None:
    """
    Apply the policy's outcome for ``kind`` to the policy's model.

    Returns:
        The outcome applied, or None when the policy has no entry for ``kind``
    """
    outcome = context.policy.outcome_for(kind)
    if outcome is None:
        return None

    model = context.policy.model
    reason = FAILURE_REASONS[kind]
    if outcome == AvailabilityOutcome.TERMINAL:
        context.service.mark_terminal(model, reason)
    elif outcome == AvailabilityOutcome.STICKY_RETRY:
        context.service.mark_retry_once_per_turn(model, reason)

    availability_transitions_total.labels(outcome=outcome.value).inc()
    logger.debug(
        "Availability transition applied",
        model=model,
        failure_kind=kind.value,
        outcome=outcome.value,
    )
    return outcome


def availability_context_provider(
    service: AvailabilityService,
    catalog: PolicyCatalog,
    default_model: str | None = None,
) -> Callable[[str | None], AvailabilityContext | None]:
    """
    Build the ``get_availability_context`` callable for retry options.

    The returned callable resolves the policy of the model being called, or
    of ``default_model`` when the loop does not know its model yet.
    """

    def provide(model: str | None) -> AvailabilityContext | None:
        name = model or default_model
        if not name:
            return None
        return AvailabilityContext(service=service, policy=catalog.get(name))

    return provide


@dataclass(frozen=True)
class FallbackPolicyContext:
    """Failed model's policy (if in the chain) and the candidates after it."""

    failed_policy: ModelPolicy | None
    candidates: list[ModelPolicy] = field(default_factory=list)


def build_fallback_policy_context(
    chain: list[ModelPolicy],
    failed_model: str,
    wraps_around: bool = False,
) -> FallbackPolicyContext:
    """
    Candidates to fall back to after ``failed_model``.

    Only models downstream of the failed one are candidates, unless
    ``wraps_around`` also admits the upstream ones (in chain order after
    the downstream ones). A model outside the chain keeps the full chain.
    """
    index = next((i for i, policy in enumerate(chain) if policy.model == failed_model), None)
    if index is None:
        return FallbackPolicyContext(failed_policy=None, candidates=list(chain))

    candidates = chain[index + 1 :]
    if wraps_around:
        candidates = candidates + chain[:index]
    return FallbackPolicyContext(failed_policy=chain[index], candidates=candidates)
