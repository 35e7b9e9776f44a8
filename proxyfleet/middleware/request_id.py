"""Request ID middleware.

Every request gets an ID (reused from ``X-Request-ID`` when the caller sends
one). It is kept on ``request.state.request_id``, echoed back in the response
header, and bound to a context variable so log records emitted while the
request is handled carry it.
"""

from __future__ import annotations

import contextvars
import logging
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

current_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "current_request_id", default=None
)


class RequestIdLogFilter(logging.Filter):
    """Copies the active request ID onto log records that lack one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = current_request_id.get()
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID to each request and exposes it to logging."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = current_request_id.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            current_request_id.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
