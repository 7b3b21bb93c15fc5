"""
Unit tests for the default retry predicate.

Tests status-based retries, network codes found anywhere in the cause
chain, and the ``retry_fetch_errors`` opt-in.
"""

import errno
import socket
import ssl

import httpx
import pytest

from invocation_engine.retry.classifier import (
    MAX_CAUSE_DEPTH,
    get_network_error_code,
    has_retryable_network_code,
    is_retryable_error,
    iter_error_chain,
)


def wrap(error: BaseException, layers: int) -> BaseException:
    """Wrap ``error`` in ``layers`` RuntimeErrors chained through __cause__."""
    current = error
    for index in range(layers):
        outer = RuntimeError(f"layer {index}")
        outer.__cause__ = current
        current = outer
    return current


class TestStatusCodes:
    """Test HTTP-status driven retries."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 599])
    def test_retryable_statuses(self, status_error, status):
        assert is_retryable_error(status_error("failed", status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 600])
    def test_non_retryable_statuses(self, status_error, status):
        assert is_retryable_error(status_error("failed", status)) is False

    def test_httpx_status_error(self, http_status_error):
        assert is_retryable_error(http_status_error(503)) is True
        assert is_retryable_error(http_status_error(400)) is False

    def test_plain_error_is_not_retryable(self):
        assert is_retryable_error(ValueError("bad input")) is False


class TestNetworkCodes:
    """Test detection of transient network conditions."""

    @pytest.mark.parametrize("code", ["ECONNRESET", "ETIMEDOUT", "EPIPE", "ENOTFOUND", "EAI_AGAIN", "ECONNREFUSED", "EPROTO"])
    def test_code_attribute(self, code_error, code):
        assert is_retryable_error(code_error("network failure", code)) is True

    def test_unlisted_code(self, code_error):
        assert is_retryable_error(code_error("missing file", "ENOENT")) is False

    def test_os_errno(self):
        """OSError errno values map to their symbolic names."""
        error = OSError(errno.ECONNRESET, "Connection reset by peer")

        assert get_network_error_code(error) == "ECONNRESET"
        assert is_retryable_error(error) is True

    def test_builtin_connection_errors_without_errno(self):
        assert is_retryable_error(ConnectionResetError()) is True
        assert is_retryable_error(BrokenPipeError()) is True

    def test_gaierror(self):
        error = socket.gaierror(socket.EAI_NONAME, "Name or service not known")

        assert get_network_error_code(error) == "ENOTFOUND"
        assert is_retryable_error(error) is True

    def test_ssl_bad_record_mac(self):
        error = ssl.SSLError("decryption failed or bad record mac")
        error.reason = "SSLV3_ALERT_BAD_RECORD_MAC"

        assert get_network_error_code(error) == "ERR_SSL_SSLV3_ALERT_BAD_RECORD_MAC"
        assert is_retryable_error(error) is True

    def test_ssl_without_reason_is_not_retryable(self):
        assert is_retryable_error(ssl.SSLError("handshake failed")) is False

    def test_httpx_transport_errors(self):
        assert is_retryable_error(httpx.ConnectError("connection refused")) is True
        assert is_retryable_error(httpx.ReadTimeout("read timed out")) is True
        assert is_retryable_error(httpx.RemoteProtocolError("peer closed connection")) is True

    def test_mapping_with_code(self):
        assert get_network_error_code({"code": "EPIPE"}) == "EPIPE"
        assert has_retryable_network_code({"code": "EPIPE"}) is True
        assert has_retryable_network_code({"code": 500}) is False


class TestCauseChain:
    """Test traversal of __cause__ / __context__ chains."""

    def test_code_on_cause(self, code_error):
        error = wrap(code_error("reset", "ECONNRESET"), 1)

        assert is_retryable_error(error) is True

    def test_code_at_depth_limit_is_found(self, code_error):
        error = wrap(code_error("reset", "ECONNRESET"), MAX_CAUSE_DEPTH)

        assert has_retryable_network_code(error) is True

    def test_code_beyond_depth_limit_is_ignored(self, code_error):
        error = wrap(code_error("reset", "ECONNRESET"), MAX_CAUSE_DEPTH + 1)

        assert has_retryable_network_code(error) is False

    def test_implicit_context_is_followed(self, code_error):
        try:
            try:
                raise code_error("timed out", "ETIMEDOUT")
            except Exception:
                raise RuntimeError("request failed")
        except RuntimeError as error:
            caught = error

        assert is_retryable_error(caught) is True

    def test_suppressed_context_is_not_followed(self, code_error):
        try:
            try:
                raise code_error("timed out", "ETIMEDOUT")
            except Exception:
                raise RuntimeError("request failed") from None
        except RuntimeError as error:
            caught = error

        assert is_retryable_error(caught) is False

    def test_cyclic_chain_terminates(self):
        first = RuntimeError("first")
        second = RuntimeError("second")
        first.__cause__ = second
        second.__cause__ = first

        assert list(iter_error_chain(first)) == [first, second]
        assert is_retryable_error(first) is False


class TestFetchFailed:
    """Test the generic "fetch failed" opt-in."""

    def test_not_retried_by_default(self):
        assert is_retryable_error(TypeError("fetch failed")) is False

    def test_retried_when_enabled(self):
        assert is_retryable_error(TypeError("Fetch failed"), retry_fetch_errors=True) is True

    def test_named_codes_ignore_flag(self, code_error):
        error = wrap(code_error("fetch failed", "ECONNRESET"), 1)

        assert is_retryable_error(error, retry_fetch_errors=False) is True
