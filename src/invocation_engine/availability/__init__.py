"""
Model availability: per-model policies and the shared health registry.

Main Components:
    - ModelPolicy: Failure kind -> availability outcome table
    - AvailabilityContext: Service handle + policy, resolved per attempt
    - ModelAvailabilityService: Process-wide, thread-safe health registry
    - PolicyCatalog: Fallback chain and per-model policies from settings

Usage:
    >>> service = ModelAvailabilityService()
    >>> catalog = PolicyCatalog.from_settings(settings)
    >>> provider = availability_context_provider(service, catalog)
"""

from invocation_engine.availability.model_policy import (
    AvailabilityContext,
    AvailabilityService,
    ModelPolicy,
)
from invocation_engine.availability.policy_catalog import (
    DEFAULT_STATE_TRANSITIONS,
    PolicyCatalog,
    create_default_policy,
)
from invocation_engine.availability.policy_helpers import (
    FallbackPolicyContext,
    apply_state_transition,
    availability_context_provider,
    build_fallback_policy_context,
    classify_failure_kind,
)
from invocation_engine.availability.service import (
    ModelAvailability,
    ModelAvailabilityService,
    ModelSelectionResult,
)

__all__ = [
    "AvailabilityContext",
    "AvailabilityService",
    "DEFAULT_STATE_TRANSITIONS",
    "FallbackPolicyContext",
    "ModelAvailability",
    "ModelAvailabilityService",
    "ModelPolicy",
    "ModelSelectionResult",
    "PolicyCatalog",
    "apply_state_transition",
    "availability_context_provider",
    "build_fallback_policy_context",
    "classify_failure_kind",
    "create_default_policy",
]
