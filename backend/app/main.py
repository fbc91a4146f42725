"""
RentCar Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐ ┌────────────┐  │
    │  │ Rate Limit │→│ Req ID   │→│ Logging │→│ GZip/CORS  │  │
    │  └────────────┘ └──────────┘ └─────────┘ └────────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  /api/users  /api/cars  /api/history  /api/reviews       │
    │  /api/ranking  /api/admin  /health                       │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ Auth→401 │ Permission→403 │ 404 │ 409  │
    │  RateLimit→429  │ Database→500 │ anything else→500       │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate security-critical configuration (logged, not fatal)
    3. Wait for the database (tenacity retry)
    4. Create tables when DB_AUTO_CREATE is set
    5. Create the bootstrap super admin when configured

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import async_session_factory, create_all_tables, dispose_engine, wait_for_database
from app.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    RentCarError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware, request_id_var
from app.routes import admin, cars, health, history, ranking, reviews, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    The request ID comes from RequestIDLogFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)  # Docker captures stdout
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party loggers that are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def bootstrap_admin() -> None:
    """Create the configured super admin on first start."""
    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        return
    from app.services.admin_service import admin_service

    async with async_session_factory() as session:
        try:
            await admin_service.bootstrap_super_admin(
                session, settings.bootstrap_admin_email, settings.bootstrap_admin_password
            )
            await session.commit()
        except RentCarError as e:
            await session.rollback()
            logger.error("Could not create the bootstrap admin: %s", e.message)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("RentCar Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: health checks and local development keep working
        logger.error("Configuration error: %s", str(e))

    await wait_for_database()
    if settings.db_auto_create:
        await create_all_tables()
    await bootstrap_admin()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("RentCar Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(error: str, message: str, details=None) -> dict:
    return {
        "error": error,
        "message": message,
        "details": details or None,
        "request_id": request_id_var.get(""),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map service exceptions to HTTP responses with one error envelope.

    Handler hierarchy:
        ValidationError         → 400 validation_error
        AuthenticationError     → 401 authentication_error (+ WWW-Authenticate)
        PermissionDeniedError   → 403 permission_denied
        NotFoundError           → 404 not_found
        ConflictError           → 409 conflict
        RateLimitExceededError  → 429 rate_limit_exceeded (+ Retry-After)
        DatabaseError           → 500 server_error (details logged only)
        RentCarError (base)     → 500 server_error
        Exception (fallback)    → 500 internal_server_error

    5xx responses never carry internal details; those go to the server log.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=error_body("authentication_error", exc.message, exc.context),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("Permission denied on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=403,
            content=error_body("permission_denied", exc.message, exc.context),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=error_body("not_found", exc.message, exc.context),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(RentCarError)
    async def handle_rentcar_error(request: Request, exc: RentCarError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="RentCar API",
        description=(
            "Car-rental marketplace: owners list cars, customers book them, "
            "both sides review and climb loyalty leaderboards."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RateLimit runs first, CORS last
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(cars.router)
    app.include_router(history.router)
    app.include_router(reviews.router)
    app.include_router(ranking.router)
    app.include_router(admin.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `app.main:app` to be importable
app = create_app()
