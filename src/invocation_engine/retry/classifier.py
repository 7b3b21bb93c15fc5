"""
Default retry predicate.

An error is worth retrying when it carries a 429 / 5xx status, or when a
transient network condition (connection reset, timeout, TLS record
corruption, ...) shows up on the error or anywhere in its chain of causes.
Transports wrap the low-level OS or TLS error several layers deep
(httpcore -> httpx -> SDK error), so the chain is walked, with a depth cap
against cyclic chains.
"""

import errno
import socket
import ssl
from collections.abc import Iterator
from typing import Any

import httpx

from invocation_engine.errors.http_errors import get_error_status

RETRYABLE_NETWORK_CODES = frozenset(
    {
        "ECONNRESET",
        "ETIMEDOUT",
        "EPIPE",
        "ENOTFOUND",
        "EAI_AGAIN",
        "ECONNREFUSED",
        # SSL/TLS transient errors
        "ERR_SSL_SSLV3_ALERT_BAD_RECORD_MAC",
        "ERR_SSL_WRONG_VERSION_NUMBER",
        "ERR_SSL_DECRYPTION_FAILED_OR_BAD_RECORD_MAC",
        "ERR_SSL_BAD_RECORD_MAC",
        "EPROTO",  # Generic protocol error (often SSL-related)
    }
)

FETCH_FAILED_MESSAGE = "fetch failed"

MAX_CAUSE_DEPTH = 5

_GAI_CODES = {
    socket.EAI_AGAIN: "EAI_AGAIN",
    socket.EAI_NONAME: "ENOTFOUND",
}

# Checked in order; subclasses before their bases
_TYPE_CODES: tuple[tuple[type[BaseException], str], ...] = (
    (httpx.TimeoutException, "ETIMEDOUT"),
    (httpx.ConnectError, "ECONNREFUSED"),
    (httpx.ReadError, "ECONNRESET"),
    (httpx.WriteError, "EPIPE"),
    (httpx.RemoteProtocolError, "EPROTO"),
    (ConnectionResetError, "ECONNRESET"),
    (ConnectionRefusedError, "ECONNREFUSED"),
    (BrokenPipeError, "EPIPE"),
    (TimeoutError, "ETIMEDOUT"),
)


def iter_error_chain(error: BaseException, max_depth: int = MAX_CAUSE_DEPTH) -> Iterator[BaseException]:
    """Yield ``error`` and up to ``max_depth`` of its causes."""
    current: BaseException | None = error
    seen: set[int] = set()
    for _ in range(max_depth + 1):
        if current is None or id(current) in seen:
            return
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def _code_of(error: BaseException) -> str | None:
    code = getattr(error, "code", None)
    if isinstance(code, str):
        return code
    # SSLError.errno is an OpenSSL code, not an OS errno
    if isinstance(error, ssl.SSLError):
        reason = getattr(error, "reason", None)
        return f"ERR_SSL_{reason}" if reason else None
    if isinstance(error, socket.gaierror):
        return _GAI_CODES.get(error.errno)
    if isinstance(error, OSError) and error.errno:
        name = errno.errorcode.get(error.errno)
        if name:
            return name
    for error_type, name in _TYPE_CODES:
        if isinstance(error, error_type):
            return name
    return None


def get_network_error_code(error: Any) -> str | None:
    """First platform error code found on ``error`` or its causes."""
    if not isinstance(error, BaseException):
        code = error.get("code") if isinstance(error, dict) else None
        return code if isinstance(code, str) else None
    for link in iter_error_chain(error):
        code = _code_of(link)
        if code:
            return code
    return None


def has_retryable_network_code(error: Any) -> bool:
    """True if any error in the chain carries an allow-listed network code."""
    if not isinstance(error, BaseException):
        return get_network_error_code(error) in RETRYABLE_NETWORK_CODES
    return any(_code_of(link) in RETRYABLE_NETWORK_CODES for link in iter_error_chain(error))


def is_retryable_error(error: Any, retry_fetch_errors: bool = False) -> bool:
    """
    Default predicate deciding whether a failed attempt should be retried.

    Retries on 429 (Too Many Requests), 5xx server errors and transient
    network codes. Named network codes are retried regardless of
    ``retry_fetch_errors``; the flag only controls the ambiguous generic
    "fetch failed" message.

    Args:
        error: The failure raised by the operation
        retry_fetch_errors: Whether to retry generic "fetch failed" errors

    Returns:
        True if the error is transient
    """
    if has_retryable_network_code(error):
        return True

    if retry_fetch_errors and isinstance(error, BaseException):
        if FETCH_FAILED_MESSAGE in str(error).lower():
            return True

    status = get_error_status(error)
    if status is not None:
        # 400 and the rest of 4xx (except 429) are never retried
        return status == 429 or 500 <= status < 600

    return False
