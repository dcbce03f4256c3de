"""
Health Check Endpoints.

Endpoints:
- /health, /api/health: Database round trip (always hits the database)
- /, /api: Service banner with a timeout-bounded database status
"""

import asyncio
from typing import Any

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from simplenotes.backend.core.config import get_app_config, get_environment
from simplenotes.backend.core.dependencies import Supervisor
from simplenotes.backend.core.logging import get_logger
from simplenotes.backend.core.utils import iso_timestamp

router = APIRouter()
logger = get_logger(__name__)


async def health_check(supervisor: Supervisor) -> JSONResponse:
    """
    Database health check.

    Runs the probe query directly instead of trusting the supervisor's
    ``connected`` flag. Returns 503 when the query fails.
    """
    try:
        db_time = await supervisor.ping()
    except Exception as e:
        logger.warning("Health check failed", extra={"error": str(e)})
        return JSONResponse(
            status_code=503,
            content={
                "status": "ERROR",
                "timestamp": iso_timestamp(),
                "database": "disconnected",
                "error": str(e) or type(e).__name__,
            },
        )

    return JSONResponse(
        status_code=200,
        content={
            "status": "OK",
            "timestamp": iso_timestamp(),
            "database": "connected",
            "dbTime": jsonable_encoder(db_time),
            "environment": get_environment(),
        },
    )


async def service_banner(supervisor: Supervisor) -> dict[str, Any]:
    """
    Report that the service is up.

    ``databaseStatus`` comes from one probe-query round trip, bounded by the
    supervisor's probe timeout. The banner itself never fails.
    """
    try:
        async with asyncio.timeout(supervisor.probe_timeout):
            await supervisor.ping()
        database_status = "connected"
    except Exception as e:
        logger.warning("Banner database check failed", extra={"error": str(e) or type(e).__name__})
        database_status = "disconnected"

    return {
        "status": "SimpleNotes API is running",
        "timestamp": iso_timestamp(),
        "databaseStatus": database_status,
        "version": get_app_config().application.version,
    }


router.add_api_route("/health", health_check, methods=["GET"], summary="Health check")
router.add_api_route("/", service_banner, methods=["GET"], summary="Service banner")

# Same endpoints under the API prefix
api_router = APIRouter()
api_router.add_api_route("/health", health_check, methods=["GET"], summary="Health check")
api_router.add_api_route("", service_banner, methods=["GET"], summary="Service banner")
