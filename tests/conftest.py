"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import random

import httpx
import pytest

from invocation_engine.config import Settings


class StatusError(Exception):
    """Minimal SDK-style error exposing ``status``."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class CodeError(Exception):
    """Error exposing a platform error ``code`` string."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Delays are tiny so tests that really sleep stay fast. Override specific
    settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.RETRY_MAX_ATTEMPTS = 5
    """
    return Settings(
        # === Application ===
        APP_NAME="Resilient Invocation Engine (Test)",
        APP_VERSION="0.1.0",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Models ===
        DEFAULT_MODEL="gemini-2.5-pro",
        FALLBACK_MODELS=["gemini-2.5-flash", "gemini-2.5-flash-lite"],
        WRAP_FALLBACK_CHAIN=False,
        MODEL_POLICIES={},

        # === Retry & Backoff ===
        RETRY_MAX_ATTEMPTS=3,
        RETRY_INITIAL_DELAY_MS=1.0,
        RETRY_MAX_DELAY_MS=5.0,
        RETRY_FETCH_ERRORS=False,
    )


@pytest.fixture
def seeded_rng() -> random.Random:
    """Deterministic jitter source."""
    return random.Random(1234)


@pytest.fixture
def status_error():
    """Factory for SDK-style errors: ``status_error("boom", 503)``."""
    return StatusError


@pytest.fixture
def code_error():
    """Factory for errors carrying a platform code: ``code_error("reset", "ECONNRESET")``."""
    return CodeError


@pytest.fixture
def api_error_payload():
    """Factory for provider error envelopes as model endpoints return them."""

    def build(code: int, message: str, details: list | None = None) -> dict:
        return {"error": {"code": code, "message": message, "details": details or []}}

    return build


@pytest.fixture
def http_status_error():
    """Factory for httpx.HTTPStatusError with an optional JSON body."""

    def build(status_code: int, payload: dict | None = None) -> httpx.HTTPStatusError:
        request = httpx.Request("POST", "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-pro:generateContent")
        if payload is None:
            response = httpx.Response(status_code, request=request)
        else:
            response = httpx.Response(status_code, json=payload, request=request)
        return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)

    return build
