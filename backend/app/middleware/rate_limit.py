"""
RentCar Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter.
Why:   Stops credential stuffing against the login endpoints and keeps one
       client from saturating the database pool.
Who:   Applied to every request via Starlette middleware.
When:  Outermost application middleware; rejects before any other work.

Algorithm: sliding window log
    Each IP keeps a deque of request timestamps. On each request, timestamps
    older than the window are dropped; if the remainder is at the limit the
    request is refused with 429 and a Retry-After header.

Login endpoints get a tighter budget (a tenth of RATE_LIMIT_REQUESTS,
never below 5) tracked separately from general traffic.

State is process-local. Multiple workers each enforce their own window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LOGIN_PATHS = frozenset({"/api/users/login", "/api/admin/login"})
EXCLUDED_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding window limiter keyed by (bucket, client IP)."""

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._hits: Dict[Tuple[str, str], Deque[float]] = defaultdict(deque)
        self._seen = 0

    @staticmethod
    def limit_for(bucket: str) -> int:
        if bucket == "login":
            return max(5, settings.rate_limit_requests // 10)
        return settings.rate_limit_requests

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket = "login" if path in LOGIN_PATHS else "api"
        key = (bucket, client_ip)
        limit = self.limit_for(bucket)

        now = time.time()
        window_start = now - settings.rate_limit_window
        hits = self._hits[key]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= limit:
            retry_after = int(hits[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s (%s): %d requests in %ds",
                client_ip, bucket, len(hits), settings.rate_limit_window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._drop_idle(window_start)

        return await call_next(request)

    def _drop_idle(self, window_start: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Dropped %d idle rate-limit entries", len(idle))
