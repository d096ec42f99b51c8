"""Health check endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.core.config import settings
from recs_api.core.deps import RedisClient, get_db
from recs_api.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    r: RedisClient,
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """
    Health check endpoint.

    Checks database and Redis connectivity and returns service status.
    """
    status = "healthy"
    checks: dict[str, str] = {}

    # Check database connection
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        status = "unhealthy"
        checks["database"] = f"unhealthy: {e}"

    # Check Redis connection (OAuth state and Celery broker)
    try:
        await r.ping()
        checks["redis"] = "healthy"
    except Exception as e:
        status = "unhealthy"
        checks["redis"] = f"unhealthy: {e}"

    return HealthResponse(
        status=status,
        version=settings.version,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check: the process is up."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """
    Readiness check for container orchestration.

    Checks the database is reachable before taking traffic.
    """
    await db.execute(text("SELECT 1"))

    return {"status": "ready"}
