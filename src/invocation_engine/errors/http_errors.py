"""
HTTP status extraction for arbitrary error shapes.

Transports disagree on where the status lives: ``httpx.HTTPStatusError``
keeps it on ``response.status_code``, SDK errors expose ``status`` or
``status_code``, and gaxios-style dicts nest it under ``response.status``.
"""

from typing import Any

import httpx


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _as_status(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def get_error_status(error: Any) -> int | None:
    """
    Return the HTTP-style status code carried by ``error``, if any.

    Args:
        error: Exception or error-like mapping

    Returns:
        Status code, or None when the error carries none
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    for key in ("status", "status_code"):
        status = _as_status(_get(error, key))
        if status is not None:
            return status

    response = _get(error, "response")
    if response is not None:
        for key in ("status_code", "status"):
            status = _as_status(_get(response, key))
            if status is not None:
                return status

    return None


def error_message(error: Any) -> str:
    """Best-effort human message for any error shape."""
    if isinstance(error, BaseException):
        return str(error)
    message = _get(error, "message")
    if isinstance(message, str):
        return message
    return str(error)
