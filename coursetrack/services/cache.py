"""Read-through cache for reports and student dashboards.

Flow:  caller -> cache -> miss -> build from the store -> populate -> return
       caller -> cache -> hit  -> return

Two invalidation strategies work together:

  1. TTL (REPORT_CACHE_TTL): every entry expires on its own, so a missed
     invalidation only leaves stale data for a bounded time.
  2. Explicit invalidation: every mutation that can change a report
     deletes the affected keys straight away.

Key layout:
  report:global:<teacher_id>:<class_id>   admin report (filters or "-")
  report:teacher:<teacher_id>             teacher report
  dashboard:<student_id>                  student dashboard

The store is the source of truth.  A Redis failure on read is treated as
a miss; a failure on write or invalidation is logged and the request
carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from coursetrack.core.config import SETTINGS
from coursetrack.core.metrics import CACHE_OPERATIONS
from coursetrack.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob pattern (e.g., 'report:*')."""
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests, no TTL enforcement.

    The autouse fixture in conftest.py clears it between tests.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache shared by every API instance."""

    _PREFIX = "coursetrack:cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server while it walks every key.
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()


# ---------------------------------------------------------------------------
# Keys and helpers
# ---------------------------------------------------------------------------


def global_report_key(teacher_id: str | None, class_id: str | None) -> str:
    return f"report:global:{teacher_id or '-'}:{class_id or '-'}"


def teacher_report_key(teacher_id: str) -> str:
    return f"report:teacher:{teacher_id}"


def dashboard_key(student_id: str) -> str:
    return f"dashboard:{student_id}"


async def read_through(key: str, build: Callable[[], Awaitable[str]]) -> str:
    """Return the cached value for `key`, building and storing it on a miss."""
    try:
        cached = await cache_service.get(key)
    except RedisError as e:
        CACHE_OPERATIONS.labels(operation="error").inc()
        logger.warning("Cache read failed key=%s: %s", key, e)
        cached = None
    else:
        CACHE_OPERATIONS.labels(operation="hit" if cached is not None else "miss").inc()
    if cached is not None:
        return cached

    value = await build()
    try:
        await cache_service.set(key, value, SETTINGS.report_cache_ttl)
    except RedisError as e:
        CACHE_OPERATIONS.labels(operation="error").inc()
        logger.warning("Cache write failed key=%s: %s", key, e)
    return value


async def invalidate(*patterns: str) -> None:
    """Delete every cached entry matching any of `patterns`."""
    for pattern in patterns:
        try:
            if pattern.endswith("*"):
                await cache_service.delete_pattern(pattern)
            else:
                await cache_service.delete(pattern)
        except RedisError as e:
            CACHE_OPERATIONS.labels(operation="error").inc()
            logger.warning("Cache invalidation failed pattern=%s: %s", pattern, e)
            continue
        CACHE_OPERATIONS.labels(operation="invalidate").inc()


async def invalidate_reports() -> None:
    await invalidate("report:*")


async def invalidate_dashboards(student_id: str | None = None) -> None:
    await invalidate(dashboard_key(student_id) if student_id else "dashboard:*")


async def invalidate_all() -> None:
    await invalidate("report:*", "dashboard:*")
