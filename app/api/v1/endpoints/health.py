"""
Health check endpoints.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.infrastructure.cache.redis import get_redis
from app.infrastructure.database.base import get_db

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "xentro-api",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Readiness check including database and, when used, the Redis session cache.

    Returns:
        Readiness status with component health
    """
    components = {
        "api": "healthy",
        "database": "unknown",
    }

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        components["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error("readiness_database_failed", error=str(e))
        components["database"] = "unhealthy"

    if settings.SESSION_CACHE_BACKEND == "redis":
        try:
            redis_client = await get_redis()
            await redis_client.ping()
            components["cache"] = "healthy"
        except (RedisError, OSError) as e:
            logger.error("readiness_cache_failed", error=str(e))
            components["cache"] = "unhealthy"

    all_healthy = all(status == "healthy" for status in components.values())

    return {
        "status": "ready" if all_healthy else "not ready",
        "components": components,
    }
