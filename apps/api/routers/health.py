"""
Health, readiness and liveness endpoints.
"""

from typing import Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db

router = APIRouter()


async def check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return f"down: {exc}"
    return "up"


async def check_redis() -> str:
    client = redis.from_url(settings.REDIS_URL)
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        return f"down: {exc}"
    finally:
        await client.aclose()
    return "up"


def _scorer_status(request: Request) -> str:
    return "configured" if getattr(request.app.state, "scorer", None) is not None else "missing"


async def _collect_checks(request: Request, db: AsyncSession) -> Dict[str, str]:
    return {
        "database": await check_database(db),
        "redis": await check_redis(),
        "credibility_scorer": _scorer_status(request),
    }


@router.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Report every dependency; degraded when the store or Redis is down."""
    checks = await _collect_checks(request, db)
    degraded = checks["database"] != "up" or checks["redis"] != "up"
    return {"status": "degraded" if degraded else "healthy", "api": "up", **checks}


@router.get("/health/ready")
async def readiness_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Ready once the store answers and the scorer is configured.

    Redis is reported but not required: rate limits fall back to local counters.
    """
    checks = await _collect_checks(request, db)
    missing = []
    if checks["database"] != "up":
        missing.append("DATABASE_URL")
    if checks["credibility_scorer"] != "configured":
        missing.append("OPENAI_API_KEY")

    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing, "checks": checks},
        )
    return {"ready": True, "checks": checks}


@router.get("/health/live")
async def liveness_check():
    return {"alive": True}
