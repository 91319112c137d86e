"""
Redis caching service for the staff dashboard summary.

CACHING STRATEGY
================

What we cache:
  - The dashboard summary (JSON-serialized), one entry per reserved-type
    filter: "dashboard:summary:{variant}"

Why:
  - The summary aggregates every participant, event and attendance row
  - Several staff screens poll it during check-in

Invalidation strategy:
  - On a recorded scan or a reverted attendance: delete all dashboard keys
  - TTL-based expiry (REDIS_CACHE_TTL) as safety net for every other write

  Keys share the "dashboard:" prefix so invalidation is a SCAN + DELETE.

Cache failures never fail the request: every operation logs and degrades to
"no cache".
"""

import json
from typing import Optional

import redis.asyncio as redis
from eventdesk.core.config import get_settings
from eventdesk.core.logging import get_logger
from eventdesk.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

DASHBOARD_PREFIX = "dashboard:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def _make_dashboard_key(variant: str) -> str:
    return f"{DASHBOARD_PREFIX}summary:{variant}"


async def get_cached_dashboard(variant: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_dashboard_key(variant)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_dashboard(variant: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_dashboard_key(variant)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_dashboard_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{DASHBOARD_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
