"""
Drone Routes Backend — Health Check Route
===========================================

What:  Health check endpoint for container probes and load balancers.
How:   Pings the database with SELECT 1 and asks the object store whether
       the photo bucket exists.

Status levels:
    - healthy:   database and object store reachable
    - degraded:  database up, object store down (routes readable, photos not)
    - unhealthy: database down
"""

import logging
import time

from fastapi import APIRouter

from droneroutes import __version__
from droneroutes.database import ping_database
from droneroutes.schemas.common import HealthResponse
from droneroutes.services.object_store import object_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    store_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        await ping_database()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Object Store ────────────────────────────────────────────────
    if not await object_store.health_check():
        store_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        object_store=store_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
