# Middleware package init
"""
RentCar Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit: refuse abusive clients before any other work
    2. Request ID: mint the correlation ID used by logs and error bodies
    3. Logging: one access line per request, with status and duration
    4. GZip / CORS: provided by Starlette

Responses unwind in reverse, which is how Logging sees the final status
code and Request ID can stamp the X-Request-ID header.
"""
