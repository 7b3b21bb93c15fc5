"""Monitoring and metrics instrumentation for the invocation engine.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from invocation_engine.monitoring.metrics import (
    availability_transitions_total,
    fallback_negotiations_total,
    retry_attempts_total,
    retry_backoff_seconds,
)

__all__ = [
    "retry_attempts_total",
    "retry_backoff_seconds",
    "fallback_negotiations_total",
    "availability_transitions_total",
]
