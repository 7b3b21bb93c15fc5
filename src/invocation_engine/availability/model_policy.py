"""
Model policies and the per-attempt availability context.

A ModelPolicy is a declarative table from failure kind to availability
outcome. The retry loop looks the observed failure kind up in the table of
the model it just called; it never branches on model names.
"""

from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from invocation_engine.models.enums import AvailabilityOutcome, FailureKind


class ModelPolicy(BaseModel):
    """
    Availability policy of a single model.

    A failure kind missing from ``state_transitions`` triggers no
    availability mutation.
    """

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Model name the policy applies to")
    state_transitions: dict[FailureKind, AvailabilityOutcome] = Field(
        default_factory=dict,
        description="Failure kind -> outcome; absent = no special handling",
    )
    is_last_resort: bool = Field(
        default=False,
        description="Last model of a fallback chain; offered when no other model is available",
    )

    def outcome_for(self, kind: FailureKind) -> AvailabilityOutcome | None:
        return self.state_transitions.get(kind)


class AvailabilityService(Protocol):
    """Mutation surface of the shared availability state used by the retry loop."""

    def mark_terminal(self, model: str, reason: str) -> None: ...

    def mark_retry_once_per_turn(self, model: str, reason: str) -> None: ...


@dataclass(frozen=True)
class AvailabilityContext:
    """
    Shared service handle paired with the policy of the model being called.

    Resolved again before every attempt, since a fallback may change the
    model between attempts.
    """

    service: AvailabilityService
    policy: ModelPolicy
