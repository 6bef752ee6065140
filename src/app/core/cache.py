"""Public workflow projection cache with Redis backend and graceful fallback.

Public views are read far more often than workflows change. Projections are
cached for a short TTL and invalidated whenever the workflow is written.
When Redis is unavailable every call is a miss and callers read the database.
"""

import json
from typing import Any

from src.app.core.redis import get_redis

PREFIX_PUBLIC_WORKFLOW = "public_workflow"
PUBLIC_WORKFLOW_TTL = 60  # seconds


def _key(slug: str, include_metadata: bool) -> str:
    variant = "meta" if include_metadata else "base"
    return f"{PREFIX_PUBLIC_WORKFLOW}:{slug}:{variant}"


async def get_cached_public_workflow(
    slug: str, include_metadata: bool
) -> dict[str, Any] | None:
    """Return a cached projection, or None on miss or when Redis is unavailable."""
    redis = await get_redis()
    if not redis:
        return None
    raw = await redis.get(_key(slug, include_metadata))
    if raw is None:
        return None
    return json.loads(raw)  # type: ignore[no-any-return]


async def cache_public_workflow(
    slug: str,
    include_metadata: bool,
    projection: dict[str, Any],
    ttl: int = PUBLIC_WORKFLOW_TTL,
) -> bool:
    """Store a JSON-ready projection.

    Returns:
        True if stored in Redis, False if Redis unavailable
    """
    redis = await get_redis()
    if not redis:
        return False
    await redis.setex(_key(slug, include_metadata), ttl, json.dumps(projection))
    return True


async def invalidate_public_workflow(slug: str) -> bool:
    """Drop both projection variants for a slug.

    Returns:
        True if Redis was reachable, False otherwise
    """
    redis = await get_redis()
    if not redis:
        return False
    await redis.delete(_key(slug, True), _key(slug, False))
    return True
