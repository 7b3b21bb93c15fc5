"""
Fallback negotiation between the retry loop and the caller.

Main Components:
    - FallbackNegotiator: Wraps the caller's ``on_persistent_429`` callback
    - PolicyFallbackHandler: Ready-made callback driven by the policy chain
"""

from invocation_engine.fallback.handler import PolicyFallbackHandler, build_fallback_handler
from invocation_engine.fallback.negotiator import FallbackNegotiator

__all__ = [
    "FallbackNegotiator",
    "PolicyFallbackHandler",
    "build_fallback_handler",
]
