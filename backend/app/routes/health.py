"""
RentCar Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   Load balancers route away from instances that cannot reach the database.
How:   Runs SELECT 1 against the pool and reports the result with uptime.
Who:   Called by Docker health checks, load balancers, and monitoring systems.
When:  Periodically (e.g., every 30 seconds by Docker, every 10 seconds by LB).

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level: set once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend and its database. "
        "Used by Docker health checks and load balancers."
    ),
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
