"""Liveness endpoint with per-dependency status.

Always answers 200 while the process can respond; the `status` field says
whether a backing service is impaired.  Returning 503 here would make an
orchestrator restart a container that is only degraded.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from coursetrack.db.engine import engine
from coursetrack.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if engine is not None:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except SQLAlchemyError as e:
            logger.warning("Health check: database unreachable: %s", e)
            checks["database"] = "degraded"
            overall = "degraded"
    else:
        checks["database"] = "in_memory"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except RedisError as e:
            logger.warning("Health check: redis unreachable: %s", e)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    return {"status": overall, "checks": checks}
