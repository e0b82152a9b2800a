"""
Redis cache for the booth catalog.

CACHING STRATEGY
================

What we cache:
  - The active booth list of one venue, JSON-serialized
  - Key: "booths:venue={venue}"

Why:
  - Every availability query and every booth search starts from that list
  - Booths change when staff add one, not when guests book

Invalidation:
  - Creating a booth deletes the key of its own venue only
  - REDIS_CACHE_TTL bounds staleness for changes made outside the API

Why NOT cache availability:
  - Slot status flips on every hold, release and expiry
  - A stale "held" would hide inventory for the whole TTL

Redis is optional. Disabled or unreachable, every helper is a no-op and
callers read the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from venue_booking.core.config import get_settings
from venue_booking.core.logging import get_logger
from venue_booking.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

BOOTH_KEY_PREFIX = "booths:venue="

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Shared connection, created on first use. None when the cache is off."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None
    if _redis_client is not None:
        return _redis_client

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
        retry_on_timeout=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        redis_connection_errors.inc()
        logger.error("redis_connection_failed", error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected", url=settings.REDIS_URL)
    _redis_client = client
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def booth_list_key(venue: str) -> str:
    return f"{BOOTH_KEY_PREFIX}{venue}"


async def get_cached_booths(venue: str) -> Optional[list[dict]]:
    client = await get_redis()
    if client is None:
        return None

    key = booth_list_key(venue)
    try:
        payload = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=payload is not None)
    return json.loads(payload) if payload is not None else None


async def set_cached_booths(venue: str, booths: list[dict]) -> None:
    client = await get_redis()
    if client is None:
        return

    key = booth_list_key(venue)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(booths, default=str))
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_booth_cache(venue: str) -> None:
    client = await get_redis()
    if client is None:
        return

    key = booth_list_key(venue)
    try:
        deleted = await client.delete(key)
    except RedisError as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))
        return
    logger.info("cache_invalidated", key=key, deleted=deleted)


async def get_cache_stats() -> dict:
    """Keyspace hit rate for /health."""
    client = await get_redis()
    if client is None:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
