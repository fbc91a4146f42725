"""
RentCar Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency and
       startup helpers (connectivity probe, optional table creation).
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Transaction model:
    One request = one transaction. Services only flush; the dependency below
    commits once the route handler returns. Any exception (including our own
    ValidationError raised halfway through a booking) rolls everything back,
    so a rejected request never leaves partial writes behind.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite (tests, local demos) uses its own pool, so the sizing options are
    only passed for server databases.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())


if settings.is_sqlite:
    # SQLite leaves foreign keys off per connection, so ON DELETE never fires
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: Prevents lazy-loading issues after commit
#   Without this, accessing attributes after commit triggers a new DB query,
#   which fails outside the session context
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared metadata
    (used by Alembic for migrations and by tests for create_all).
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction (saves changes)
        4. On error: rolls back the transaction (discards changes)
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/cars")
        async def list_cars(db: AsyncSession = Depends(get_db_session)):
            result = await db.execute(select(Car))
            return result.scalars().all()
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            # Rollback for ANY failure, including business-rule rejections
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
@retry(
    # What: Only connection-level failures are worth waiting out
    retry=retry_if_exception_type((OSError, SQLAlchemyError)),
    stop=stop_after_attempt(settings.db_connect_attempts),
    # Example: attempt 1 → ~1s, attempt 2 → ~2s, attempt 3 → ~4s (+jitter)
    wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def wait_for_database() -> None:
    """
    What:  Blocks startup until the database answers `SELECT 1`.
    When:  Called from the lifespan handler before the app starts serving.
    Why:   In docker-compose the API container often starts before PostgreSQL
           accepts connections; retrying here beats crashing on the first request.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection established")


async def create_all_tables() -> None:
    """
    What:  Creates any missing tables from the ORM metadata.
    When:  Startup, only when DB_AUTO_CREATE=true.
    """
    # Models must be imported so their tables register on Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured (%d tables)", len(Base.metadata.tables))


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
