"""
Monitoring Routes

Liveness, dependency health and Prometheus metrics.
"""

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.config import settings
from engagement.database import get_db
from engagement.utils.background import pending_background_tasks
from engagement.utils.cache import cache_manager

router = APIRouter(tags=["Monitoring"])

APP_START_TIME = time.time()


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    version: str
    uptime_seconds: float
    checks: dict[str, dict[str, Any]] = {}


@router.get("/health", response_model=HealthStatus)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthStatus:
    """
    Health check.

    The service stays "healthy" without Redis since view admission fails open;
    a missing cache only shows up as "degraded".
    """
    checks = {
        "database": await _check_database(db),
        "redis": await _check_redis(),
        "background_tasks": {"status": "healthy", "pending": pending_background_tasks()},
    }

    if checks["database"]["status"] != "healthy":
        overall = "unhealthy"
    elif checks["redis"]["status"] != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthStatus(
        status=overall,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
        checks=checks,
    )


@router.get("/health/redis")
async def redis_health() -> dict[str, Any]:
    return await _check_redis()


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


async def _check_database(db: AsyncSession) -> dict[str, Any]:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "healthy", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


async def _check_redis() -> dict[str, Any]:
    start = time.perf_counter()
    if await cache_manager.ping():
        return {"status": "healthy", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    return {"status": "unavailable", "message": "Redis unreachable; dedup and rate limiting fail open"}
