"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without a real availability service or
model endpoint.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from invocation_engine.availability.model_policy import AvailabilityContext
from invocation_engine.availability.policy_catalog import create_default_policy


@pytest.fixture
def mock_availability_service():
    """Mock availability service exposing the two mutation methods."""
    mock = MagicMock()
    mock.mark_terminal = MagicMock(return_value=None)
    mock.mark_retry_once_per_turn = MagicMock(return_value=None)
    return mock


@pytest.fixture
def availability_context_for(mock_availability_service):
    """Context provider returning a default-policy context for any model."""

    def provide(model):
        return AvailabilityContext(
            service=mock_availability_service,
            policy=create_default_policy(model or "gemini-2.5-pro"),
        )

    return MagicMock(side_effect=provide)


@pytest.fixture
def no_wait(monkeypatch):
    """Replace the backoff wait with a recording AsyncMock."""
    mock = AsyncMock(return_value=None)
    monkeypatch.setattr("invocation_engine.retry.engine.cancellable_delay", mock)
    return mock


@pytest.fixture
def fallback_callback():
    """Async fallback callback; set ``return_value`` to accept a model."""
    return AsyncMock(return_value=None)
