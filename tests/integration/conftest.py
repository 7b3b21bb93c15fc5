"""Integration test fixtures (scripted model endpoint and wiring).

The model endpoint is served by ``httpx.MockTransport`` so the full path
(HTTP error -> parsing -> classification -> availability -> fallback) runs
without network access.
"""

from collections import defaultdict, deque

import httpx
import pytest
import pytest_asyncio

from invocation_engine.availability.policy_catalog import PolicyCatalog
from invocation_engine.availability.service import ModelAvailabilityService
from invocation_engine.logging_config import configure_logging


class ScriptedModelEndpoint:
    """Per-model queues of scripted responses; models answer 200 once drained.

    Attributes:
        calls: Model names in the order they were called
    """

    def __init__(self):
        self._scripts: dict[str, deque] = defaultdict(deque)
        self._always: dict[str, tuple[int, dict]] = {}
        self.calls: list[str] = []

    def script(self, model: str, *responses: tuple[int, dict]) -> None:
        self._scripts[model].extend(responses)

    def always(self, model: str, status: int, payload: dict) -> None:
        self._always[model] = (status, payload)

    def handle(self, request: httpx.Request) -> httpx.Response:
        model = request.url.path.rsplit("/", 1)[-1].split(":", 1)[0]
        self.calls.append(model)
        if self._scripts[model]:
            status, payload = self._scripts[model].popleft()
        elif model in self._always:
            status, payload = self._always[model]
        else:
            status, payload = 200, {"text": f"answer from {model}"}
        return httpx.Response(status, json=payload)


@pytest.fixture(scope="session", autouse=True)
def structured_logging():
    """Route engine logs through the structlog console pipeline."""
    configure_logging(log_level="DEBUG", environment="development")


@pytest.fixture
def model_endpoint():
    return ScriptedModelEndpoint()


@pytest_asyncio.fixture
async def model_client(model_endpoint):
    """AsyncClient talking to the scripted endpoint."""
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(model_endpoint.handle),
        base_url="https://generativelanguage.googleapis.com/v1beta",
    ) as client:
        yield client


@pytest.fixture
def availability_service():
    return ModelAvailabilityService()


@pytest.fixture
def integration_catalog(test_settings):
    return PolicyCatalog.from_settings(test_settings)
