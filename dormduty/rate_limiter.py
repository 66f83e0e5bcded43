"""
Fixed-window rate limiting for the optimizer endpoints.

Counters live in Redis when REDIS_URL is configured (INCR + EXPIRE, shared by
every worker) and in process memory otherwise.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import Depends, HTTPException, Request

from . import config
from .auth import get_token_claims

logger = logging.getLogger(__name__)

# Redis connection, created on first use
redis_client: Optional[redis.Redis] = None

# Format: {key: {"count": int, "reset_time": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> Optional[redis.Redis]:
    """Redis client for REDIS_URL, or None when rate limits are kept in memory"""
    global redis_client

    if redis_client is None and config.REDIS_URL:
        masked_url = config.REDIS_URL.split("@")[-1] if "@" in config.REDIS_URL else "****"
        logger.info(f"📡 Connecting rate limiter to Redis at {masked_url}")
        redis_client = redis.from_url(
            config.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    return redis_client


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v["reset_time"]]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def check_memory_rate_limit(key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
    """
    Count a request against an in-process window.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None or current_time >= entry["reset_time"]:
            entry = {"count": 0, "reset_time": current_time + window_seconds}
            memory_cache[key] = entry

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        return is_allowed, entry["count"], max(0, entry["reset_time"] - current_time)


def check_redis_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """Same contract as check_memory_rate_limit, counted in Redis"""
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()

    # First hit of a window (or a key that lost its expiry) starts the clock
    if ttl is None or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds

    return count <= limit, count, ttl


def check_rate_limit(key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
    """Redis when configured, memory otherwise. Redis errors let the request through."""
    try:
        client = get_redis_client()
    except redis.RedisError as e:
        logger.warning(f"⚠️ Redis unavailable for rate limiting, allowing request: {e}")
        return True, 0, window_seconds

    if client is None:
        return check_memory_rate_limit(key, limit, window_seconds)

    try:
        return check_redis_rate_limit(key, limit, window_seconds, client)
    except redis.RedisError as e:
        logger.warning(f"⚠️ Rate limit check failed, allowing request (fail-open): {e}")
        return True, 0, window_seconds


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a per-user rate limiter dependency

    Example usage:
        optimizer_rate_limit = create_rate_limiter(limit=20, window_seconds=3600, key_prefix="optimizer")

        @router.post("/optimize")
        async def optimize(_: None = Depends(optimizer_rate_limit)):
            ...
    """

    async def rate_limiter(request: Request, claims: dict = Depends(get_token_claims)):
        if not config.RATE_LIMIT_ENABLED:
            return

        key = f"{key_prefix}:{claims['sub']}"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds)

        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = max(0, limit - current_count)

    return rate_limiter
