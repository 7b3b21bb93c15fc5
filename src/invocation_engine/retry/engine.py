"""
Retry loop wrapping every outbound model call.

The loop attempts the operation, classifies each failure, records the
availability transition for the model it just called, then either waits
and retries, hands off to the fallback negotiator, or raises. Every wait
and every in-flight attempt is raced against the caller's cancellation
token.

Failure routing:
    1. Terminal quota / model not found: fallback negotiation right away
    2. Validation required: ask ``on_validation_required`` (verify = restart)
    3. Retryable quota or retryable error: backoff, then next attempt
    4. Retryable quota / 5xx on the last attempt: fallback negotiation
    5. Anything else: raised on first occurrence

Usage:
    options = RetryOptions.from_settings(settings, signal=token)
    result = await retry_with_backoff(lambda: client.generate(prompt), options)
"""

import asyncio
import inspect
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from invocation_engine.availability.model_policy import AvailabilityContext
from invocation_engine.availability.policy_helpers import (
    apply_state_transition,
    classify_failure_kind,
)
from invocation_engine.config import Settings
from invocation_engine.errors.exceptions import (
    ModelNotFoundError,
    RetryableQuotaError,
    TerminalQuotaError,
    ValidationRequiredError,
)
from invocation_engine.errors.http_errors import get_error_status
from invocation_engine.errors.quota_errors import classify_provider_error
from invocation_engine.fallback.negotiator import FallbackCallback, FallbackNegotiator
from invocation_engine.models.enums import AuthType, FailureKind, ValidationIntent
from invocation_engine.monitoring.metrics import retry_attempts_total, retry_backoff_seconds
from invocation_engine.retry.backoff import cancellable_delay, compute_backoff_delay
from invocation_engine.retry.cancellation import CancellationToken
from invocation_engine.retry.classifier import is_retryable_error
from invocation_engine.retry.exceptions import (
    InvalidContentError,
    RetryCancelledError,
    RetryConfigurationError,
)
from invocation_engine.retry.metadata import Attempt

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ValidationCallback = Callable[
    [ValidationRequiredError],
    "Awaitable[ValidationIntent | str | None] | ValidationIntent | str | None",
]

_FIVE_XX_PATTERN = re.compile(r"5\d{2}")


@dataclass(frozen=True)
class RetryOptions:
    """
    Per-invocation retry configuration.

    Attributes:
        max_attempts: Attempts per model (>= 1); also caps accepted fallbacks
        initial_delay_ms: Backoff delay after the first failure
        max_delay_ms: Backoff cap (before jitter)
        should_retry_on_error: Predicate ``(error, retry_fetch_errors) -> bool``
        should_retry_on_content: Rejects successful but unusable results
        retry_fetch_errors: Also retry generic "fetch failed" errors
        auth_type: Caller's authentication mode, passed to the fallback callback
        model: Model targeted by the first attempt
        signal: Cancellation token
        on_persistent_429: Fallback callback ``(auth_type, error) -> model | None``
        on_validation_required: Asks the user to verify the account
        get_availability_context: ``model -> AvailabilityContext | None``
        on_retry: Observer called with each Attempt before its wait
        rng: Random source for jitter
    """

    max_attempts: int = 3
    initial_delay_ms: float = 5000.0
    max_delay_ms: float = 30000.0
    should_retry_on_error: Callable[[Any, bool], bool] = is_retryable_error
    should_retry_on_content: Callable[[Any], bool] | None = None
    retry_fetch_errors: bool = False
    auth_type: AuthType | str | None = None
    model: str | None = None
    signal: CancellationToken | None = None
    on_persistent_429: FallbackCallback | None = None
    on_validation_required: ValidationCallback | None = None
    get_availability_context: Callable[[str | None], AvailabilityContext | None] | None = None
    on_retry: Callable[[Attempt], None] | None = None
    rng: random.Random | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "RetryOptions":
        values: dict[str, Any] = {
            "max_attempts": settings.RETRY_MAX_ATTEMPTS,
            "initial_delay_ms": settings.RETRY_INITIAL_DELAY_MS,
            "max_delay_ms": settings.RETRY_MAX_DELAY_MS,
            "retry_fetch_errors": settings.RETRY_FETCH_ERRORS,
            "model": settings.DEFAULT_MODEL,
        }
        values.update(overrides)
        return cls(**values)


def _validate_options(options: RetryOptions) -> None:
    max_attempts = options.max_attempts
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts <= 0:
        raise RetryConfigurationError("max_attempts must be a positive integer")
    if options.initial_delay_ms < 0 or options.max_delay_ms < 0:
        raise RetryConfigurationError("delays must be >= 0")


async def _run_operation(
    operation: Callable[[], Awaitable[T]], signal: CancellationToken | None
) -> T:
    """Await the operation, abandoning it as soon as ``signal`` fires."""
    if signal is None:
        return await operation()

    task = asyncio.ensure_future(operation())
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if signal.cancelled:
        if task.done():
            if not task.cancelled():
                # Retrieve so asyncio does not report it as unhandled
                task.exception()
        else:
            task.cancel()
        raise RetryCancelledError(reason=signal.reason)
    return task.result()


def _chain(classified: BaseException, error: BaseException) -> BaseException:
    if classified is not error and classified.__cause__ is None:
        classified.__cause__ = error
    return classified


def _record(kind: FailureKind, action: str) -> None:
    retry_attempts_total.labels(failure_kind=kind.value, action=action).inc()


def _log_retry_attempt(attempt: Attempt, status: int | None) -> None:
    error = attempt.error
    message = str(error) if error is not None else ""

    if status == 429:
        event = "Attempt failed with status 429, retrying with backoff"
    elif status is not None and 500 <= status < 600:
        event = "Attempt failed with 5xx status, retrying with backoff"
    elif "429" in message:
        event = "Attempt failed with 429 error (no Retry-After header), retrying with backoff"
    elif _FIVE_XX_PATTERN.search(message):
        event = "Attempt failed with 5xx error, retrying with backoff"
    else:
        event = "Attempt failed, retrying with backoff"

    logger.warning(
        event,
        attempt=attempt.number,
        status=status,
        delay_ms=round(attempt.delay_ms),
        model=attempt.model,
        error=message,
        error_type=type(error).__name__,
    )


async def _wait_before_retry(options: RetryOptions, attempt: Attempt) -> None:
    if options.on_retry is not None:
        options.on_retry(attempt)
    retry_backoff_seconds.observe(attempt.delay_ms / 1000)
    await cancellable_delay(attempt.delay_ms, options.signal)


async def _ask_validation_intent(
    options: RetryOptions, error: ValidationRequiredError
) -> ValidationIntent | None:
    if options.on_validation_required is None:
        return None
    try:
        intent = options.on_validation_required(error)
        if inspect.isawaitable(intent):
            intent = await intent
        return ValidationIntent(intent) if intent is not None else None
    except Exception as handler_error:
        logger.warning(
            "Validation handler failed",
            error=str(handler_error),
            error_type=type(handler_error).__name__,
        )
        return None


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
) -> T:
    """
    Run ``operation`` until it succeeds, retrying transient failures.

    Args:
        operation: Zero-argument callable returning an awaitable
        options: Retry configuration (defaults when None)

    Returns:
        The first successful (and content-accepted) result

    Raises:
        RetryConfigurationError: ``max_attempts`` is not a positive integer
        RetryCancelledError: The signal fired before or during any attempt or wait
        InvalidContentError: Every attempt returned rejected content
        Exception: The classified or original failure once retries are exhausted,
            the failure is not retryable, or fallback was declined
    """
    options = options or RetryOptions()
    _validate_options(options)

    signal = options.signal
    if signal is not None:
        signal.raise_if_cancelled()

    negotiator = FallbackNegotiator(options.on_persistent_429)
    current_model = options.model
    attempt = 0
    # Accepted fallbacks and verifications, each restarting the attempt budget
    restarts = 0
    last_error: BaseException | None = None

    async def negotiate_fallback(classified: BaseException) -> str | None:
        if restarts >= options.max_attempts:
            logger.warning(
                "Fallback limit reached",
                limit=options.max_attempts,
                model=current_model,
            )
            return None
        return await negotiator.negotiate(options.auth_type, classified)

    while attempt < options.max_attempts:
        if signal is not None:
            signal.raise_if_cancelled()
        attempt += 1

        context = None
        if options.get_availability_context is not None:
            context = options.get_availability_context(current_model)

        try:
            result = await _run_operation(operation, signal)
        except RetryCancelledError:
            raise
        except Exception as exc:
            error: BaseException = exc
        else:
            if options.should_retry_on_content is None or not options.should_retry_on_content(result):
                return result

            last_error = InvalidContentError(result, attempt)
            if attempt >= options.max_attempts:
                _record(FailureKind.UNKNOWN, "raise")
                logger.warning("Invalid content, max attempts reached", attempt=attempt, model=current_model)
                raise last_error

            delay_ms = compute_backoff_delay(
                attempt, options.initial_delay_ms, options.max_delay_ms, options.rng
            )
            logger.warning(
                "Invalid content returned, retrying with backoff",
                attempt=attempt,
                delay_ms=round(delay_ms),
                model=current_model,
            )
            _record(FailureKind.UNKNOWN, "retry")
            await _wait_before_retry(
                options, Attempt(attempt, last_error, delay_ms, current_model)
            )
            continue

        last_error = error
        classified = classify_provider_error(error)
        kind = classify_failure_kind(classified)
        if context is not None:
            apply_state_transition(context, kind)

        if isinstance(classified, (TerminalQuotaError, ModelNotFoundError)):
            new_model = await negotiate_fallback(classified)
            if new_model:
                _record(kind, "fallback")
                restarts += 1
                current_model = new_model
                attempt = 0
                continue
            _record(kind, "raise")
            raise _chain(classified, error)

        if isinstance(classified, ValidationRequiredError):
            intent = await _ask_validation_intent(options, classified)
            if intent == ValidationIntent.VERIFY and restarts < options.max_attempts:
                logger.info("Account verified, restarting attempts", model=current_model)
                _record(kind, "retry")
                restarts += 1
                attempt = 0
                continue
            if intent is not None and intent != ValidationIntent.VERIFY:
                classified.user_handled = True
            _record(kind, "raise")
            raise _chain(classified, error)

        is_quota = isinstance(classified, RetryableQuotaError)
        status = get_error_status(error)
        is_server_error = status is not None and 500 <= status < 600

        if not is_quota and not options.should_retry_on_error(error, options.retry_fetch_errors):
            _record(kind, "raise")
            raise error

        if attempt >= options.max_attempts:
            logger.warning(
                "Max attempts reached",
                attempt=attempt,
                model=current_model,
                error=str(classified),
            )
            if is_quota or is_server_error:
                new_model = await negotiate_fallback(classified)
                if new_model:
                    _record(kind, "fallback")
                    restarts += 1
                    current_model = new_model
                    attempt = 0
                    continue
            _record(kind, "raise")
            if is_quota:
                raise _chain(classified, error)
            raise error

        if is_quota and classified.retry_delay_ms is not None:
            delay_ms = classified.retry_delay_ms
            logger.warning(
                "Attempt failed, retrying after provider delay",
                attempt=attempt,
                delay_ms=delay_ms,
                model=current_model,
                error=str(classified),
            )
            retry = Attempt(attempt, classified, delay_ms, current_model)
        else:
            delay_ms = compute_backoff_delay(
                attempt, options.initial_delay_ms, options.max_delay_ms, options.rng
            )
            retry = Attempt(attempt, error, delay_ms, current_model)
            _log_retry_attempt(retry, status)

        _record(kind, "retry")
        await _wait_before_retry(options, retry)

    # Every iteration above returns, raises or continues below the limit
    if last_error is None:
        raise RuntimeError("Retry attempts exhausted")
    raise last_error
