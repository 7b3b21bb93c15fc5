"""
Structured provider API errors.

Model endpoints report failures as a JSON envelope
``{"error": {"code": 429, "message": "...", "details": [...]}}`` where each
detail record is tagged with an ``@type`` URL. Depending on the transport,
that envelope reaches us as an exception message, a response body, a raw
string, a list, or JSON nested inside another error's message (sometimes
several levels deep). ``parse_provider_api_error`` digs it out and returns
a typed ``ProviderApiError``.
"""

import json
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"
QUOTA_FAILURE_TYPE = "type.googleapis.com/google.rpc.QuotaFailure"
ERROR_INFO_TYPE = "type.googleapis.com/google.rpc.ErrorInfo"
HELP_TYPE = "type.googleapis.com/google.rpc.Help"
DEBUG_INFO_TYPE = "type.googleapis.com/google.rpc.DebugInfo"

# Nested JSON-in-message unwrapping stops here
MAX_NESTING_DEPTH = 10


class ErrorDetail(BaseModel):
    """A typed detail record. Unknown ``@type`` values are kept as-is."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    type_url: str = Field(..., alias="@type", description="Detail type URL")


class RetryInfo(ErrorDetail):
    """Provider hint on when to retry, e.g. ``"34.07s"``."""

    retry_delay: str | None = Field(default=None, alias="retryDelay")


class QuotaViolation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    subject: str | None = None
    description: str | None = None
    quota_id: str | None = Field(default=None, alias="quotaId")
    quota_metric: str | None = Field(default=None, alias="quotaMetric")
    quota_value: str | None = Field(default=None, alias="quotaValue")
    quota_dimensions: dict[str, Any] = Field(default_factory=dict, alias="quotaDimensions")


class QuotaFailure(ErrorDetail):
    """Which quota was violated (``quotaId`` distinguishes per-minute from daily)."""

    violations: list[QuotaViolation] = Field(default_factory=list)


class ErrorInfo(ErrorDetail):
    """Machine-readable reason and domain of the error."""

    reason: str = ""
    domain: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class HelpLink(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    description: str = ""
    url: str = ""


class Help(ErrorDetail):
    links: list[HelpLink] = Field(default_factory=list)


class DebugInfo(ErrorDetail):
    detail: str = ""
    stack_entries: list[str] = Field(default_factory=list, alias="stackEntries")


_DETAIL_MODELS: dict[str, type[ErrorDetail]] = {
    RETRY_INFO_TYPE: RetryInfo,
    QUOTA_FAILURE_TYPE: QuotaFailure,
    ERROR_INFO_TYPE: ErrorInfo,
    HELP_TYPE: Help,
    DEBUG_INFO_TYPE: DebugInfo,
}


class ProviderApiError(BaseModel):
    """
    Parsed provider error envelope.

    Attached to quota exceptions so upstream layers can render diagnostics
    without re-parsing provider payloads.
    """

    model_config = ConfigDict(frozen=True)

    code: int = Field(..., description="HTTP-style status code")
    message: str = Field(..., description="Human readable provider message")
    details: list[ErrorDetail] = Field(default_factory=list, description="Typed detail records")

    def find_detail(self, detail_type: type[ErrorDetail]) -> Any:
        """Return the first detail of ``detail_type`` or None."""
        for detail in self.details:
            if isinstance(detail, detail_type):
                return detail
        return None


def _get(obj: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an attribute, whichever ``obj`` is."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _loads_embedded_json(text: str) -> Any:
    """Parse ``text`` as JSON, or the outermost ``{...}`` block inside it."""
    # strict=False: provider messages carry raw newlines inside JSON strings
    try:
        return json.loads(text, strict=False)
    except ValueError:
        pass
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start : end + 1], strict=False)
    except ValueError:
        return None


def _to_mapping(value: Any) -> dict | None:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        value = _loads_embedded_json(value)
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else None


def _response_payload(response: Any) -> Any:
    """Body of an HTTP response object (httpx, gaxios-style dict, ...)."""
    data = _get(response, "data")
    if data is not None:
        return data
    json_method = getattr(response, "json", None)
    if callable(json_method):
        try:
            return json_method()
        except ValueError:
            return _get(response, "text")
        except httpx.StreamError:
            # Streaming response whose body was never read
            return None
    return _get(response, "text")


def _candidate_payloads(error: Any) -> list[Any]:
    response = _get(error, "response")
    candidates = []
    if response is not None:
        candidates.append(_response_payload(response))
    if isinstance(error, BaseException):
        if error.args:
            candidates.append(error.args[0])
        candidates.append(str(error))
    else:
        candidates.append(error)
    return candidates


def _normalize_detail(raw: Any) -> ErrorDetail | None:
    if not isinstance(raw, dict):
        return None
    # Some endpoints emit keys with stray whitespace (" @type")
    normalized = {key.strip() if isinstance(key, str) else key: value for key, value in raw.items()}
    type_url = normalized.get("@type")
    if not isinstance(type_url, str):
        return None
    model = _DETAIL_MODELS.get(type_url, ErrorDetail)
    try:
        return model.model_validate(normalized)
    except ValidationError:
        return ErrorDetail.model_validate({"@type": type_url})


def _unwrap(envelope: dict) -> tuple[int | None, str | None, Any]:
    """Follow ``error``/``message`` nesting down to the innermost error."""
    current = envelope
    code: int | None = None
    for _ in range(MAX_NESTING_DEPTH):
        candidate_code = current.get("code")
        if isinstance(candidate_code, int) and not isinstance(candidate_code, bool):
            code = candidate_code

        inner = current.get("error")
        if isinstance(inner, dict):
            current = inner
            continue

        message = current.get("message")
        if isinstance(message, dict):
            current = message
            continue
        if isinstance(message, str):
            nested = _to_mapping(message)
            if nested is not None and isinstance(nested.get("error"), dict):
                current = nested["error"]
                continue
        break

    final_code = current.get("code")
    if isinstance(final_code, int) and not isinstance(final_code, bool):
        code = final_code
    message = current.get("message")
    return code, message if isinstance(message, str) else None, current.get("details")


def parse_provider_api_error(error: Any) -> ProviderApiError | None:
    """
    Extract a structured provider error from anything a transport raised.

    Args:
        error: Exception, dict, list, JSON string, or response-bearing object

    Returns:
        ProviderApiError, or None if no error envelope with a code and a
        message could be found
    """
    if error is None:
        return None

    for payload in _candidate_payloads(error):
        envelope = _to_mapping(payload)
        if not envelope:
            continue
        code, message, raw_details = _unwrap(envelope)
        if code is None or message is None:
            continue
        details = []
        if isinstance(raw_details, list):
            details = [d for d in (_normalize_detail(raw) for raw in raw_details) if d is not None]
        return ProviderApiError(code=code, message=message, details=details)

    return None
