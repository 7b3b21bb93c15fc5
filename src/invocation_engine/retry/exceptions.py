"""
Retry loop exceptions.

These are raised by the retry loop itself, never by the wrapped operation,
so callers can tell a misconfigured or cancelled loop apart from the
operation's own failures.
"""


class RetryConfigurationError(ValueError):
    """
    Raised before any attempt when the retry options are invalid.

    Never retried.
    """


class RetryCancelledError(Exception):
    """
    Raised when the caller's cancellation token fires.

    Takes precedence over whatever the operation raised; the loop makes no
    further attempts once this is raised.

    Attributes:
        reason: Reason given when the token was cancelled (if any)
    """

    def __init__(self, message: str = "Retry loop cancelled", reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(f"{message}: {reason}" if reason else message)


class InvalidContentError(Exception):
    """
    Raised when the operation kept returning content rejected by
    ``should_retry_on_content`` until the attempts ran out.

    Attributes:
        content: Last rejected result
    """

    def __init__(self, content: object, attempts: int) -> None:
        self.content = content
        self.attempts = attempts
        super().__init__(f"Invalid content returned after {attempts} attempts")
