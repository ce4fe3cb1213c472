"""
Middleware components for request processing.

This package contains middleware for:
- Request context (request ID bound into structured logs)
- Platform request verification (certificate chain, timestamp, signature)
"""

from alexa_gate.middleware.alexa_verification import AlexaVerificationMiddleware
from alexa_gate.middleware.request_context import RequestContextMiddleware

__all__ = [
    "AlexaVerificationMiddleware",
    "RequestContextMiddleware",
]
