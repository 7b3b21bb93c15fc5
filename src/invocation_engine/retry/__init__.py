"""
Retry-with-backoff loop for outbound model calls.

Main Components:
    - retry_with_backoff: The orchestrating retry loop
    - RetryOptions: Per-invocation configuration
    - is_retryable_error: Default retry predicate (429, 5xx, network codes)
    - compute_backoff_delay / cancellable_delay: Jittered backoff and its wait
    - CancellationToken: Caller-owned cancellation signal

Usage:
    >>> from invocation_engine.retry import RetryOptions, retry_with_backoff
    >>> result = await retry_with_backoff(call_model, RetryOptions(max_attempts=5))
"""

from invocation_engine.retry.backoff import (
    cancellable_delay,
    compute_backoff_delay,
    exponential_delay,
)
from invocation_engine.retry.cancellation import CancellationToken
from invocation_engine.retry.classifier import (
    RETRYABLE_NETWORK_CODES,
    get_network_error_code,
    has_retryable_network_code,
    is_retryable_error,
)
from invocation_engine.retry.engine import RetryOptions, retry_with_backoff
from invocation_engine.retry.exceptions import (
    InvalidContentError,
    RetryCancelledError,
    RetryConfigurationError,
)
from invocation_engine.retry.metadata import Attempt

__all__ = [
    "Attempt",
    "CancellationToken",
    "InvalidContentError",
    "RETRYABLE_NETWORK_CODES",
    "RetryCancelledError",
    "RetryConfigurationError",
    "RetryOptions",
    "cancellable_delay",
    "compute_backoff_delay",
    "exponential_delay",
    "get_network_error_code",
    "has_retryable_network_code",
    "is_retryable_error",
    "retry_with_backoff",
]
