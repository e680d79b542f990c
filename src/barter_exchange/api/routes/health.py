"""Health check endpoint.

Verifies connectivity to the offer database and Redis, returns structured
status. Used by container healthchecks and load balancers.
"""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from barter_exchange.infrastructure.database.engine import get_session_factory
from barter_exchange.infrastructure.redis_client import get_redis
from barter_exchange.logging_config import get_logger
from barter_exchange.schemas.offers import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)

VERSION = "0.1.0"


async def check_database() -> str:
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("health.db_check_failed", error=str(exc))
        return f"unhealthy: {exc}"
    return "healthy"


async def check_redis() -> str:
    try:
        await get_redis().ping()
    except Exception as exc:
        logger.error("health.redis_check_failed", error=str(exc))
        return f"unhealthy: {exc}"
    return "healthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
async def health_check() -> HealthResponse:
    """Redis only backs idempotency keys, so losing it degrades, not fails."""
    db_status = await check_database()
    redis_status = await check_redis()
    overall = "ok" if db_status == "healthy" and redis_status == "healthy" else "degraded"
    return HealthResponse(
        status=overall,
        version=VERSION,
        database=db_status,
        redis=redis_status,
    )
