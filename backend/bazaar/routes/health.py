"""
Bazaar Backend — Health Check Route
====================================

What:  Liveness/readiness probe for Docker health checks and load balancers.
How:   SELECT 1 against the database and PING against the cache.

Status levels:
    - healthy:   database and cache reachable (HTTP 200)
    - degraded:  cache unreachable; cache-gated routes fall through to the
                 database (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response
from sqlalchemy import text

from bazaar import __version__
from bazaar.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    cache_status = "connected"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with request.app.state.database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Cache ───────────────────────────────────────────────────────
    try:
        if not await request.app.state.cache.ping():
            raise ConnectionError("PING returned a falsy reply")
    except Exception as e:
        cache_status = "disconnected"
        overall = "degraded" if overall != "unhealthy" else overall
        logger.warning("Health check: cache unreachable: %s", str(e))

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        cache=cache_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
