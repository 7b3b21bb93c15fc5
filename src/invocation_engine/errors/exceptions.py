"""
Exceptions describing classified provider failures.

These exceptions give the retry loop and upstream layers (scheduler, UI)
a precise failure type, so nobody has to re-parse provider payloads to
decide whether to retry, fall back or give up.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from invocation_engine.errors.api_errors import ProviderApiError


class ProviderError(Exception):
    """
    Base exception for all classified provider errors.

    All provider-specific exceptions inherit from this to allow catching
    any classified failure with a single except clause.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ModelNotFoundError(ProviderError):
    """
    Raised when the requested model does not exist for the caller (HTTP 404).

    Routed through the same availability/fallback path as terminal quota.
    """

    def __init__(self, message: str, code: int = 404):
        super().__init__(message, {"code": code})
        self.code = code
        self.status = code


class _QuotaError(ProviderError):
    """Shared shape of the two quota failure kinds."""

    def __init__(
        self,
        message: str,
        api_error: "ProviderApiError",
        retry_delay_seconds: float | None = None,
    ):
        super().__init__(
            message,
            {"code": api_error.code, "retry_delay_seconds": retry_delay_seconds},
        )
        self.api_error = api_error
        self.status = api_error.code
        # A zero hint means "no hint"; rounding drops float noise (12.345s -> 12345ms)
        self.retry_delay_ms: float | None = (
            round(retry_delay_seconds * 1000, 6) if retry_delay_seconds else None
        )


class TerminalQuotaError(_QuotaError):
    """
    A hard quota limit has been reached (e.g. daily limit).

    Not worth retrying against the same model; the retry loop hands it to
    the fallback negotiator instead.
    """


class RetryableQuotaError(_QuotaError):
    """
    A temporary quota condition (e.g. per-minute limit).

    When ``retry_delay_ms`` is set it replaces the computed backoff delay.
    """


class ValidationRequiredError(ProviderError):
    """
    The account must be validated by the user before requests can proceed.

    Attributes:
        validation_link: URL the user should open to validate
        validation_description: Human description of the validation link
        learn_more_url: Optional documentation link
        user_handled: Set once the user chose to change auth or cancel
    """

    def __init__(
        self,
        message: str,
        api_error: "ProviderApiError | None" = None,
        validation_link: str | None = None,
        validation_description: str | None = None,
        learn_more_url: str | None = None,
    ):
        super().__init__(message, {"validation_link": validation_link})
        self.api_error = api_error
        self.status = api_error.code if api_error else 403
        self.validation_link = validation_link
        self.validation_description = validation_description
        self.learn_more_url = learn_more_url
        self.user_handled = False
