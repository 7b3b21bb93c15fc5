"""
Shared enumerations for the invocation engine.

Usage:
    >>> from invocation_engine.models import FailureKind, AvailabilityOutcome
"""

from invocation_engine.models.enums import (
    AuthType,
    AvailabilityOutcome,
    FailureKind,
    FallbackIntent,
    ValidationIntent,
)

__all__ = [
    "AuthType",
    "AvailabilityOutcome",
    "FailureKind",
    "FallbackIntent",
    "ValidationIntent",
]
