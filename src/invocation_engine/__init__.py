"""
Resilient invocation engine for remote generative-model calls.

Wraps every outbound model request with:
- Retry with exponential backoff, jitter and cancellation
- Failure classification (transient network / 5xx / quota / model-not-found)
- Per-model availability policies shared across concurrent callers
- Caller-controlled model fallback negotiation

Architecture: asyncio retry loop + table-driven availability state machine
"""

__version__ = "0.1.0"
