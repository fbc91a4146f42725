"""
RentCar Backend — Request Logging Middleware
==============================================

What:  One access-log line per request on the `rentcar.access` logger.
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware, so each line carries the request ID.

Line format:
    POST /api/history 201 12.4ms [3f9a2c1b] from 10.0.0.7

Level by status:
    5xx → ERROR · 4xx → WARNING · everything else → INFO

Never logged: request bodies (passwords, licence numbers) and the
Authorization header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("rentcar.access")

# Probes hit these every few seconds
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, duration and client address."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
