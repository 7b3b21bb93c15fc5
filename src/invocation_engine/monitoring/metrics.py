"""Custom Prometheus metrics for the invocation engine.

The host process exposes these through its own registry/exporter.
Alert rules should be configured for:
- retry_attempts_total (high retry rate indicates provider instability)
- fallback_negotiations_total (declined fallbacks surface as user-facing errors)
- availability_transitions_total (terminal transitions mean exhausted quota)
"""

from prometheus_client import Counter, Histogram

# === Retry Metrics ===

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Total failed attempts by failure kind and resulting action",
    ["failure_kind", "action"],
)
"""
Failed attempts counter by failure kind and the action the loop took.

Labels:
- failure_kind: terminal, transient, not_found, unknown
- action: retry, fallback, raise

Alert thresholds:
- WARN: retry rate > 10% of total invocations
- CRITICAL: retry rate > 30% of total invocations
"""

retry_backoff_seconds = Histogram(
    "retry_backoff_seconds",
    "Backoff wait scheduled before a retry",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0],
)
"""
Backoff delay histogram (seconds).

Provider-supplied retry delays land in the upper buckets (10s, 60s).
"""

# === Fallback Metrics ===

fallback_negotiations_total = Counter(
    "fallback_negotiations_total",
    "Fallback negotiations by outcome",
    ["accepted"],
)
"""
Fallback negotiations counter.

Labels:
- accepted: true (callback supplied a model), false (declined or failed)
"""

# === Availability Metrics ===

availability_transitions_total = Counter(
    "availability_transitions_total",
    "Availability state transitions applied by outcome",
    ["outcome"],
)
"""
Availability transitions counter.

Labels:
- outcome: terminal, sticky_retry
"""
