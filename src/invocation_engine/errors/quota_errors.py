"""
Classification of provider failures into the quota taxonomy.

Classification rules:
    - 404 -> ModelNotFoundError
    - 403 with ``VALIDATION_REQUIRED`` from a Cloud Code domain -> ValidationRequiredError
    - 429 -> TerminalQuotaError or RetryableQuotaError:
        * Cloud Code ``RATE_LIMIT_EXCEEDED`` -> retryable, ``QUOTA_EXHAUSTED`` -> terminal
        * daily limit in QuotaFailure -> terminal (wins over any retry hint)
        * RetryInfo delay -> retryable with that delay
        * per-minute limit -> retryable after 60s
        * anything else -> retryable without a delay
    - "Please retry in X[s|ms]" in the message -> retryable with that delay

Everything else is returned unchanged.
"""

import re
from typing import Any
from urllib.parse import urlparse

import structlog

from invocation_engine.errors.api_errors import (
    ErrorInfo,
    Help,
    ProviderApiError,
    QuotaFailure,
    RetryInfo,
    parse_provider_api_error,
)
from invocation_engine.errors.exceptions import (
    ModelNotFoundError,
    RetryableQuotaError,
    TerminalQuotaError,
    ValidationRequiredError,
)
from invocation_engine.errors.http_errors import error_message, get_error_status

logger = structlog.get_logger(__name__)

CLOUDCODE_DOMAINS = (
    "cloudcode-pa.googleapis.com",
    "staging-cloudcode-pa.googleapis.com",
    "autopush-cloudcode-pa.googleapis.com",
)

PER_MINUTE_RETRY_SECONDS = 60.0
RATE_LIMIT_DEFAULT_RETRY_SECONDS = 10.0

_RETRY_IN_PATTERN = re.compile(r"Please retry in ([0-9.]+(?:ms|s))")


def parse_duration_seconds(duration: str) -> float | None:
    """
    Parse a duration such as ``"34.074824224s"``, ``"60s"`` or ``"900ms"``.

    Returns:
        Duration in seconds, or None if the string is not a duration
    """
    if duration.endswith("ms"):
        number, scale = duration[:-2], 1000.0
    elif duration.endswith("s"):
        number, scale = duration[:-1], 1.0
    else:
        return None
    try:
        return float(number) / scale
    except ValueError:
        return None


def _classify_validation_required(api_error: ProviderApiError) -> ValidationRequiredError | None:
    error_info = api_error.find_detail(ErrorInfo)
    if error_info is None:
        return None
    if error_info.domain not in CLOUDCODE_DOMAINS or error_info.reason != "VALIDATION_REQUIRED":
        return None

    validation_link = None
    validation_description = None
    learn_more_url = None

    help_detail = api_error.find_detail(Help)
    if help_detail is not None and help_detail.links:
        first = help_detail.links[0]
        validation_link = first.url
        validation_description = first.description
        for link in help_detail.links:
            if link.description.strip().lower() == "learn more" or urlparse(link.url).hostname == "support.google.com":
                learn_more_url = link.url
                break

    if not validation_link:
        metadata_link = error_info.metadata.get("validation_link")
        validation_link = metadata_link if isinstance(metadata_link, str) else None

    return ValidationRequiredError(
        api_error.message,
        api_error,
        validation_link=validation_link,
        validation_description=validation_description,
        learn_more_url=learn_more_url,
    )


def _bare_api_error(message: str, api_error: ProviderApiError | None) -> ProviderApiError:
    return api_error or ProviderApiError(code=429, message=message, details=[])


def classify_provider_error(error: Any) -> Any:
    """
    Map a raw failure onto the quota taxonomy.

    Args:
        error: Whatever the wrapped operation raised

    Returns:
        A classified ProviderError subclass, or ``error`` itself when no
        rule applies
    """
    api_error = parse_provider_api_error(error)
    status = api_error.code if api_error else get_error_status(error)

    if status == 404:
        message = (api_error.message if api_error else None) or error_message(error) or "Model not found"
        return ModelNotFoundError(message, 404)

    if status == 403 and api_error is not None:
        validation_error = _classify_validation_required(api_error)
        if validation_error is not None:
            return validation_error

    if api_error is None or api_error.code != 429 or not api_error.details:
        message = api_error.message if api_error else error_message(error)
        match = _RETRY_IN_PATTERN.search(message)
        if match:
            retry_seconds = parse_duration_seconds(match.group(1))
            if retry_seconds is not None:
                return RetryableQuotaError(message, _bare_api_error(message, api_error), retry_seconds)
        elif status == 429:
            return RetryableQuotaError(message, _bare_api_error(message, api_error))
        return error

    quota_failure: QuotaFailure | None = api_error.find_detail(QuotaFailure)
    error_info: ErrorInfo | None = api_error.find_detail(ErrorInfo)
    retry_info: RetryInfo | None = api_error.find_detail(RetryInfo)

    # 1. Long-term limits
    if quota_failure is not None:
        for violation in quota_failure.violations:
            quota_id = violation.quota_id or ""
            if "PerDay" in quota_id or "Daily" in quota_id:
                return TerminalQuotaError(
                    "You have exhausted your daily quota on this model.",
                    api_error,
                )

    delay_seconds = None
    if retry_info is not None and retry_info.retry_delay:
        delay_seconds = parse_duration_seconds(retry_info.retry_delay) or None

    if error_info is not None and error_info.domain in CLOUDCODE_DOMAINS:
        if error_info.reason == "RATE_LIMIT_EXCEEDED":
            return RetryableQuotaError(
                api_error.message,
                api_error,
                delay_seconds if delay_seconds is not None else RATE_LIMIT_DEFAULT_RETRY_SECONDS,
            )
        if error_info.reason == "QUOTA_EXHAUSTED":
            return TerminalQuotaError(api_error.message, api_error, delay_seconds)

    # 2. Explicit retry hint
    if delay_seconds is not None:
        return RetryableQuotaError(
            f"{api_error.message}\nSuggested retry after {retry_info.retry_delay}.",
            api_error,
            delay_seconds,
        )

    # 3. Short-term limits
    if quota_failure is not None:
        for violation in quota_failure.violations:
            if "PerMinute" in (violation.quota_id or ""):
                return RetryableQuotaError(
                    f"{api_error.message}\nSuggested retry after 60s.",
                    api_error,
                    PER_MINUTE_RETRY_SECONDS,
                )

    if error_info is not None:
        quota_limit = error_info.metadata.get("quota_limit") or ""
        if isinstance(quota_limit, str) and "PerMinute" in quota_limit:
            return RetryableQuotaError(
                f"{error_info.reason}\nSuggested retry after 60s.",
                api_error,
                PER_MINUTE_RETRY_SECONDS,
            )

    logger.debug("Unrecognized 429 details, treating as retryable", code=api_error.code)
    return RetryableQuotaError(api_error.message, api_error)
