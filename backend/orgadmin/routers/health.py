"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from orgadmin.config import settings
from orgadmin.database import engine
from orgadmin.utils.redis import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check for load balancer (no DB/Redis check)."""
    return {
        "status": "ok",
        "service": "orgadmin",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check including the database and the revocation store.

    Returns 503 unless every dependency answers.
    """
    checks = {
        "service": "ok",
        "database": "unknown",
        "redis": "unknown",
    }
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    try:
        redis_client = await get_redis()
        await redis_client.ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "orgadmin",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
