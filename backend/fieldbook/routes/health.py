"""
Fieldbook Backend — Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer health checks.
How:   Pings the record store with SELECT 1 and checks that the file-backed
       storage root exists.
Who:   Called by container health checks, load balancers, and monitoring.

Status levels:
    - healthy:   Record store reachable and storage root present (HTTP 200)
    - degraded:  Storage root missing; table-backed records still work (HTTP 200)
    - unhealthy: Record store unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response

from fieldbook import __version__
from fieldbook.database import RecordStore, get_record_store
from fieldbook.schemas.record import HealthResponse
from fieldbook.services.file_records import FileRecordSource, get_file_records

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level: set once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Record store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    store: RecordStore = Depends(get_record_store),
    source: FileRecordSource = Depends(get_file_records),
) -> HealthResponse:
    """Check the record store and the storage root, return aggregate status."""
    db_status = "connected"
    storage_status = "available"
    overall = "healthy"

    # ── Check Record Store ────────────────────────────────────────────────
    if not await store.ping():
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: record store unreachable")

    # ── Check Storage Root ────────────────────────────────────────────────
    if not await source.available():
        storage_status = "missing"
        overall = "degraded" if overall != "unhealthy" else overall
        logger.warning("Health check: storage root %s missing", source.storage_root)

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
