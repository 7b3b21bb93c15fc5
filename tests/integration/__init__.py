"""
Integration tests for the invocation engine.

Test components together against a scripted model endpoint:
- Retry loop + real availability service + policy catalog (marked with @pytest.mark.integration)
- Fallback handler walking the model chain on quota exhaustion
- Cancellation during real backoff waits
"""
