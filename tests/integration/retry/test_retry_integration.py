"""
Integration tests for the retry loop.

These tests wire the real availability service, policy catalog, fallback
handler and retry loop against a scripted model endpoint served by
httpx.MockTransport. Backoff waits are real but tiny (test settings).

Run with: pytest tests/integration/retry/test_retry_integration.py -v
"""

import asyncio

import pytest

from invocation_engine.availability.policy_helpers import availability_context_provider
from invocation_engine.errors.api_errors import QUOTA_FAILURE_TYPE, RETRY_INFO_TYPE
from invocation_engine.errors.exceptions import TerminalQuotaError
from invocation_engine.fallback.handler import build_fallback_handler
from invocation_engine.models.enums import AuthType
from invocation_engine.retry.cancellation import CancellationToken
from invocation_engine.retry.engine import RetryOptions, retry_with_backoff
from invocation_engine.retry.exceptions import RetryCancelledError

pytestmark = pytest.mark.integration

PRO = "gemini-2.5-pro"
FLASH = "gemini-2.5-flash"
LITE = "gemini-2.5-flash-lite"

DAILY_QUOTA = (
    429,
    {
        "error": {
            "code": 429,
            "message": "Quota exceeded for quota metric 'Generate Content API requests per day'",
            "status": "RESOURCE_EXHAUSTED",
            "details": [
                {
                    "@type": QUOTA_FAILURE_TYPE,
                    "violations": [{"quotaId": "GenerateRequestsPerDayPerProjectPerModel"}],
                }
            ],
        }
    },
)

PER_MINUTE_QUOTA = (
    429,
    {
        "error": {
            "code": 429,
            "message": "Resource has been exhausted (e.g. check quota).",
            "status": "RESOURCE_EXHAUSTED",
            "details": [{"@type": RETRY_INFO_TYPE, "retryDelay": "0.001s"}],
        }
    },
)

SERVER_ERROR = (500, {"error": {"code": 500, "message": "Internal error encountered.", "status": "INTERNAL"}})

NOT_FOUND = (404, {"error": {"code": 404, "message": f"models/{PRO} is not found", "status": "NOT_FOUND"}})


@pytest.fixture
def fallback_handler(availability_service, integration_catalog, test_settings):
    return build_fallback_handler(availability_service, integration_catalog, test_settings)


@pytest.fixture
def options_for(test_settings, availability_service, integration_catalog, fallback_handler):
    """Build RetryOptions wired to the shared service, catalog and handler."""

    def build(**overrides) -> RetryOptions:
        values = {
            "auth_type": AuthType.LOGIN_WITH_GOOGLE,
            "on_persistent_429": fallback_handler,
            "get_availability_context": availability_context_provider(
                availability_service, integration_catalog, test_settings.DEFAULT_MODEL
            ),
        }
        values.update(overrides)
        return RetryOptions.from_settings(test_settings, **values)

    return build


@pytest.fixture
def generate(model_client, fallback_handler):
    """Operation calling whichever model the session currently uses."""

    async def operation() -> str:
        response = await model_client.post(
            f"/models/{fallback_handler.active_model}:generateContent",
            json={"contents": [{"role": "user", "parts": [{"text": "hello"}]}]},
        )
        response.raise_for_status()
        return response.json()["text"]

    return operation


@pytest.mark.asyncio
async def test_success_without_failures(model_endpoint, generate, options_for):
    result = await retry_with_backoff(generate, options_for())

    assert result == f"answer from {PRO}"
    assert model_endpoint.calls == [PRO]


@pytest.mark.asyncio
async def test_daily_quota_falls_back_to_next_model(
    model_endpoint, generate, options_for, availability_service, fallback_handler
):
    """Terminal quota on the preferred model switches to the next one immediately."""
    model_endpoint.always(PRO, *DAILY_QUOTA)

    result = await retry_with_backoff(generate, options_for())

    assert result == f"answer from {FLASH}"
    assert model_endpoint.calls == [PRO, FLASH]
    assert fallback_handler.active_model == FLASH
    pro = availability_service.snapshot(PRO)
    assert pro.available is False
    assert pro.reason == "quota"


@pytest.mark.asyncio
async def test_exhausted_per_minute_quota_falls_back(
    model_endpoint, generate, options_for, availability_service
):
    """Retryable quota is retried max_attempts times, then the next model is used."""
    model_endpoint.always(PRO, *PER_MINUTE_QUOTA)

    result = await retry_with_backoff(generate, options_for())

    assert result == f"answer from {FLASH}"
    assert model_endpoint.calls == [PRO, PRO, PRO, FLASH]
    pro = availability_service.snapshot(PRO)
    assert pro.available is True
    assert pro.reason == "capacity"


@pytest.mark.asyncio
async def test_transient_failures_recover_on_same_model(model_endpoint, generate, options_for):
    model_endpoint.script(PRO, SERVER_ERROR, PER_MINUTE_QUOTA)

    result = await retry_with_backoff(generate, options_for())

    assert result == f"answer from {PRO}"
    assert model_endpoint.calls == [PRO, PRO, PRO]


@pytest.mark.asyncio
async def test_persistent_server_errors_fall_back_without_marking(
    model_endpoint, generate, options_for, availability_service
):
    model_endpoint.always(PRO, *SERVER_ERROR)

    result = await retry_with_backoff(generate, options_for())

    assert result == f"answer from {FLASH}"
    assert model_endpoint.calls == [PRO, PRO, PRO, FLASH]
    assert availability_service.snapshot(PRO).available is True


@pytest.mark.asyncio
async def test_model_not_found_falls_back(model_endpoint, generate, options_for, availability_service):
    model_endpoint.always(PRO, *NOT_FOUND)

    result = await retry_with_backoff(generate, options_for())

    assert result == f"answer from {FLASH}"
    assert availability_service.snapshot(PRO).reason == "not_found"


@pytest.mark.asyncio
async def test_every_model_exhausted_raises_terminal_quota(
    model_endpoint, generate, options_for, availability_service
):
    for model in (PRO, FLASH, LITE):
        model_endpoint.always(model, *DAILY_QUOTA)

    with pytest.raises(TerminalQuotaError) as exc_info:
        await retry_with_backoff(generate, options_for())

    # The last-resort model is offered once more until the fallback cap is hit
    assert model_endpoint.calls == [PRO, FLASH, LITE, LITE]
    assert exc_info.value.api_error.code == 429
    for model in (PRO, FLASH, LITE):
        assert availability_service.snapshot(model).available is False


@pytest.mark.asyncio
async def test_api_key_auth_does_not_fall_back(model_endpoint, generate, options_for, availability_service):
    model_endpoint.always(PRO, *DAILY_QUOTA)

    with pytest.raises(TerminalQuotaError):
        await retry_with_backoff(generate, options_for(auth_type=AuthType.USE_GEMINI))

    assert model_endpoint.calls == [PRO]
    assert availability_service.snapshot(PRO).available is False


@pytest.mark.asyncio
async def test_cancellation_during_backoff(model_endpoint, generate, options_for):
    model_endpoint.always(PRO, *SERVER_ERROR)
    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.05, token.cancel, "user pressed escape")

    with pytest.raises(RetryCancelledError):
        await retry_with_backoff(
            generate,
            options_for(signal=token, initial_delay_ms=10_000, max_delay_ms=10_000),
        )

    assert model_endpoint.calls == [PRO]
