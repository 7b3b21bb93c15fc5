"""
Unit tests for the invocation engine.

Test individual components in isolation:
- Error parsing and quota classification
- Retry predicate (status codes, network codes, cause chains)
- Backoff delays and the cancellable wait
- Retry loop (attempts, cancellation, availability, fallback)
- Availability service, policy catalog and state transitions
- Fallback negotiator and policy-driven handler
"""
