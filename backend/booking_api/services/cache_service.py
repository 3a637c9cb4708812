"""
Redis caching service for event listings.

CACHING STRATEGY
================

What we cache:
  - Event listing responses (one page of events + pagination, JSON-serialized)
  - Cache key: "events:list:" + every listing parameter, so two requests share
    an entry only when they would run the same query

Invalidation:
  - On event create/update/delete
  - On booking and cancellation (both move available_seats)
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  All listing keys share the "events:list:" prefix, so invalidation is a SCAN
  over that prefix followed by DELETE.

Single events are never cached: the booking path needs the live seat count.

Redis is optional. When it is disabled or unreachable every function here
degrades to a no-op and the listing is served from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis

from booking_api.core.config import get_settings
from booking_api.core.logging import get_logger
from booking_api.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

EVENT_LIST_PREFIX = "events:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await client.ping()
        except (redis.RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(params: dict) -> str:
    """Stable key: unset parameters are skipped, the rest sorted by name."""
    parts = [f"{name}={value}" for name, value in sorted(params.items()) if value is not None]
    return EVENT_LIST_PREFIX + "&".join(parts)


async def get_cached_events(params: dict) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = make_event_list_key(params)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data is None:
        logger.debug("cache_miss", key=key)
        return None
    logger.debug("cache_hit", key=key)
    return json.loads(data)


async def set_cached_events(params: dict, data: dict) -> None:
    """Cache an event listing response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = make_event_list_key(params)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """Drop every cached event listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis hit/miss counters for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
