"""
RequestContext Middleware - Adds a request id to every request.

The id is:
- stored on request.state.request_id
- bound into structlog contextvars, so verification rejections logged deeper
  in the stack carry it automatically
- echoed back in the X-Request-ID response header

Usage:
    In endpoints:
        request.state.request_id
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from alexa_gate.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Add request context to all incoming requests.

    Request.state Namespace Convention:
    - request_id: Set by RequestContextMiddleware
    - alexa_verification: Set by AlexaVerificationMiddleware
    """

    async def dispatch(self, request: Request, call_next):
        """Process request and add context."""

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response
