"""Request ID middleware.

Generates (or propagates) a UUID request ID for every incoming request,
stores it in ``request.state.request_id`` and in a context variable, and adds
an ``X-Request-ID`` response header so operator calls can be matched to log
lines. ``RequestIdLogFilter`` copies the context value onto log records.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

_current_request_id: ContextVar[str | None] = ContextVar("bassball_request_id", default=None)


def get_request_id() -> str | None:
    """Request ID of the request being handled, if any."""
    return _current_request_id.get()


class RequestIdLogFilter(logging.Filter):
    """Stamps ``record.request_id`` unless the call already passed one in ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _current_request_id.get()
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, reusing the caller's ``X-Request-ID`` if present."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = _current_request_id.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            _current_request_id.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response
