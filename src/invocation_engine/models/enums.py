"""
Enumerations for the invocation engine.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class FailureKind(str, Enum):
    """
    Failure kind used as the key of a model's state transition table.

    Derived from the classified error of a failed attempt:
    TerminalQuotaError -> TERMINAL, RetryableQuotaError -> TRANSIENT,
    ModelNotFoundError -> NOT_FOUND, anything else -> UNKNOWN.
    """

    TERMINAL = "terminal"
    TRANSIENT = "transient"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class AvailabilityOutcome(str, Enum):
    """
    Outcome of a state transition applied to a model.

    TERMINAL marks the model unusable for the rest of the process run.
    STICKY_RETRY allows one more attempt per logical turn.
    """

    TERMINAL = "terminal"
    STICKY_RETRY = "sticky_retry"


class AuthType(str, Enum):
    """Authentication modes of the host CLI."""

    LOGIN_WITH_GOOGLE = "oauth-personal"
    USE_GEMINI = "gemini-api-key"
    USE_VERTEX_AI = "vertex-ai"
    CLOUD_SHELL = "cloud-shell"


class ValidationIntent(str, Enum):
    """User decision after an account validation prompt."""

    VERIFY = "verify"
    CHANGE_AUTH = "change_auth"
    CANCEL = "cancel"


class FallbackIntent(str, Enum):
    """
    User decision when offered a fallback model.

    RETRY_ALWAYS switches for the rest of the session, RETRY_ONCE only for
    the current request, STOP keeps the failed model and gives up.
    """

    RETRY_ALWAYS = "retry_always"
    RETRY_ONCE = "retry_once"
    STOP = "stop"
