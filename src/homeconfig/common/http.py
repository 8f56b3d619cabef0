"""Request context utilities."""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


def get_caller_id(request: Request) -> str | None:
    """Extract the verified caller id from request state."""
    auth = getattr(request.state, "auth", None)
    return getattr(auth, "caller_id", None) if auth else None


def set_request_id(value: str) -> None:
    """Bind the request id to log context."""
    structlog.contextvars.bind_contextvars(request_id=value)


def set_caller(value: str) -> None:
    """Bind the verified caller to log context."""
    structlog.contextvars.bind_contextvars(caller_id=value)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request id to each request/response and context."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self._header_name) or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_id(request_id)

        try:
            response = await call_next(request)
            response.headers.setdefault(self._header_name, request_id)
            return response
        finally:
            structlog.contextvars.clear_contextvars()
