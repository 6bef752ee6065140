"""Optional Redis client shared by the public workflow cache and rate limiting.

Redis is never required. When it is not configured, or a connection attempt
fails, callers get None and fall back to the database or in-memory state.
A failed attempt is not repeated until ``redis_retry_interval_seconds`` passes.
"""

import time

from redis.asyncio import ConnectionPool, Redis

from src.app.core.config import get_settings
from src.app.core.logging import get_logger

logger = get_logger(__name__)

_pool: ConnectionPool | None = None
_redis: Redis | None = None
_retry_after: float = 0.0


async def _discard_client() -> None:
    global _pool, _redis
    if _redis is not None:
        await _redis.aclose()
    if _pool is not None:
        await _pool.disconnect()
    _redis = None
    _pool = None


async def get_redis() -> Redis | None:
    """Return the shared client, connecting lazily, or None when unavailable."""
    global _pool, _redis, _retry_after

    if _redis is not None:
        return _redis

    settings = get_settings()
    if not settings.redis_url:
        return None

    now = time.monotonic()
    if now < _retry_after:
        return None

    try:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            socket_connect_timeout=settings.redis_connect_timeout_seconds,
            decode_responses=True,
        )
        _redis = Redis(connection_pool=_pool)
        await _redis.ping()  # type: ignore[misc]
    except Exception as e:
        _retry_after = now + settings.redis_retry_interval_seconds
        logger.warning(
            "Redis connection failed, continuing without it",
            error=str(e),
            retry_in_seconds=settings.redis_retry_interval_seconds,
        )
        await _discard_client()
        return None

    _retry_after = 0.0
    logger.info("Redis connected")
    return _redis


async def close_redis() -> None:
    """Close the connection pool. Called during application shutdown."""
    global _retry_after
    if _redis is not None:
        logger.info("Redis connection closed")
    await _discard_client()
    _retry_after = 0.0


def reset_redis_state() -> None:
    """Forget the client and any retry window without closing (for tests)."""
    global _pool, _redis, _retry_after
    _redis = None
    _pool = None
    _retry_after = 0.0
