"""
Catalog of model policies and the configured fallback chain.
"""

import structlog

from invocation_engine.availability.model_policy import ModelPolicy
from invocation_engine.config import Settings
from invocation_engine.models.enums import AvailabilityOutcome, FailureKind

logger = structlog.get_logger(__name__)

# Transient failures get one more try per turn; unknown failures leave
# availability alone.
DEFAULT_STATE_TRANSITIONS: dict[FailureKind, AvailabilityOutcome] = {
    FailureKind.TERMINAL: AvailabilityOutcome.TERMINAL,
    FailureKind.NOT_FOUND: AvailabilityOutcome.TERMINAL,
    FailureKind.TRANSIENT: AvailabilityOutcome.STICKY_RETRY,
}


def create_default_policy(model: str, is_last_resort: bool = False) -> ModelPolicy:
    return ModelPolicy(
        model=model,
        state_transitions=dict(DEFAULT_STATE_TRANSITIONS),
        is_last_resort=is_last_resort,
    )


class PolicyCatalog:
    """
    Ordered fallback chain plus per-model policies.

    Models outside the chain resolve to the default policy.

    Attributes:
        chain: Ordered model names, preferred model first
    """

    def __init__(
        self,
        chain: list[str],
        overrides: dict[str, dict[str, str]] | None = None,
    ):
        if not chain:
            raise ValueError("chain must contain at least one model")
        self.chain = list(chain)
        self._policies: dict[str, ModelPolicy] = {}

        for index, model in enumerate(self.chain):
            self._policies[model] = create_default_policy(
                model, is_last_resort=index == len(self.chain) - 1
            )

        for model, transitions in (overrides or {}).items():
            base = self._policies.get(model) or create_default_policy(model)
            self._policies[model] = base.model_copy(
                update={
                    "state_transitions": {
                        FailureKind(kind): AvailabilityOutcome(outcome)
                        for kind, outcome in transitions.items()
                    }
                }
            )

        logger.debug(
            "PolicyCatalog initialized",
            chain=self.chain,
            overridden_models=sorted((overrides or {}).keys()),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PolicyCatalog":
        chain = [settings.DEFAULT_MODEL] + [
            model for model in settings.FALLBACK_MODELS if model != settings.DEFAULT_MODEL
        ]
        return cls(chain, settings.MODEL_POLICIES)

    def get(self, model: str) -> ModelPolicy:
        policy = self._policies.get(model)
        if policy is None:
            policy = create_default_policy(model)
        return policy

    def resolve_chain(self, preferred_model: str | None = None) -> list[ModelPolicy]:
        """
        Policy chain starting at ``preferred_model``.

        A model outside the configured chain gets a single-model chain.
        """
        if preferred_model is None:
            return [self._policies[model] for model in self.chain]
        if preferred_model not in self.chain:
            return [self.get(preferred_model)]
        start = self.chain.index(preferred_model)
        return [self._policies[model] for model in self.chain[start:]]
