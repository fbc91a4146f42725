"""
RentCar Backend — Request ID Middleware
=========================================

What:  Gives every request a short correlation ID and echoes it back in the
       X-Request-ID response header.
Who:   Applied to every request via Starlette middleware.
When:  Before request logging, so access-log lines and error bodies share it.

Where the ID shows up:
    - X-Request-ID response header
    - `request_id` field of every error body (see main.register_exception_handlers)
    - every log record, through RequestIDLogFilter
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client-supplied IDs longer than this are replaced
MAX_REQUEST_ID_LENGTH = 64


class RequestIDLogFilter(logging.Filter):
    """Copy the current request ID onto each log record as `request_id`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuse the caller's X-Request-ID when it is sane, otherwise mint one.

    A web client can send its own ID to tie a UI action to server logs.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        if supplied and len(supplied) <= MAX_REQUEST_ID_LENGTH:
            rid = supplied
        else:
            rid = uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
