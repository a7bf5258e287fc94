"""
API Health Check Endpoint

Health of the API and, when enabled, of the database and Redis.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool

from shopdesk.api.schemas.error import ErrorResponse
from shopdesk.api.v1.schemas.responses import HealthResponse
from shopdesk.core.config import settings
from shopdesk.core.exceptions import DatabaseException
from shopdesk.core.logger import get_logger
from shopdesk.stores.database import test_connection
from shopdesk.stores.redis_client import get_redis_client

logger = get_logger(__name__)

router = APIRouter()


async def check_database_health() -> Dict[str, Any]:
    try:
        status = await run_in_threadpool(test_connection)
    except DatabaseException as e:
        logger.warning("Database health check failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "details": status}


async def check_redis_health() -> Dict[str, Any]:
    health = await get_redis_client().health_check()
    return {"status": health.get("status", "unknown"), "details": health}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="API Health Check",
    description="Check the overall health of the API and its dependencies",
    tags=["health"],
    responses={
        200: {"model": HealthResponse, "description": "Health check results"},
        503: {"model": ErrorResponse, "description": "Service unavailable"},
    },
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Database and Redis are only probed when ``health__check_database`` /
    ``health__check_redis`` are enabled.
    """
    components: Dict[str, Any] = {}
    overall_healthy = True

    if settings.health__check_database:
        components["database"] = await check_database_health()
        if components["database"]["status"] == "unhealthy":
            overall_healthy = False

    if settings.health__check_redis:
        components["redis"] = await check_redis_health()
        if components["redis"]["status"] == "unhealthy":
            overall_healthy = False

    components["api"] = {
        "status": "healthy",
        "version": settings.api__version,
        "environment": settings.environment,
    }

    return HealthResponse(
        status="healthy" if overall_healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.api__version,
        environment=settings.environment,
        components=components,
    )
