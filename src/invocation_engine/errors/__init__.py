"""
Provider failure taxonomy and parsing.

Turns whatever a model endpoint call raised into a precise failure type:
ModelNotFoundError, RetryableQuotaError, TerminalQuotaError or
ValidationRequiredError, each carrying the parsed ProviderApiError.

Usage:
    >>> from invocation_engine.errors import classify_provider_error
    >>> classified = classify_provider_error(exc)
"""

from invocation_engine.errors.api_errors import (
    DebugInfo,
    ErrorDetail,
    ErrorInfo,
    Help,
    HelpLink,
    ProviderApiError,
    QuotaFailure,
    QuotaViolation,
    RetryInfo,
    parse_provider_api_error,
)
from invocation_engine.errors.exceptions import (
    ModelNotFoundError,
    ProviderError,
    RetryableQuotaError,
    TerminalQuotaError,
    ValidationRequiredError,
)
from invocation_engine.errors.http_errors import error_message, get_error_status
from invocation_engine.errors.quota_errors import (
    classify_provider_error,
    parse_duration_seconds,
)

__all__ = [
    "DebugInfo",
    "ErrorDetail",
    "ErrorInfo",
    "Help",
    "HelpLink",
    "ModelNotFoundError",
    "ProviderApiError",
    "ProviderError",
    "QuotaFailure",
    "QuotaViolation",
    "RetryInfo",
    "RetryableQuotaError",
    "TerminalQuotaError",
    "ValidationRequiredError",
    "classify_provider_error",
    "error_message",
    "get_error_status",
    "parse_duration_seconds",
    "parse_provider_api_error",
]
