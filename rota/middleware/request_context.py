"""
RequestContext Middleware - Adds request tracking to all requests.

Adds to request.state:
- request_id: Unique ID for request tracing
- ip_address: Client IP address

The request ID is also bound into structlog context variables, so every log
line emitted while handling the request carries it, and is echoed back in the
X-Request-ID response header.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from rota.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Add request context to all incoming requests."""

    async def dispatch(self, request: Request, call_next):
        """Process request and add context."""

        # Reuse a caller-supplied ID so traces can span clients and server
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        ip_address = request.client.host if request.client else None
        request.state.ip_address = ip_address

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            ip_address=ip_address,
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        # Add request ID to response headers (for client-side tracing)
        response.headers["X-Request-ID"] = request_id

        return response
