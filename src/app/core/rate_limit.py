"""Request throttling for the HTTP surfaces.

Two layers sit in front of the handlers:

* ``global_rate_limit_middleware`` keeps a per-IP token bucket for every
  request that reaches the app. Buckets live in Redis when it is reachable
  so all API replicas share them; otherwise each process keeps its own.
* ``limiter`` (slowapi) adds tighter per-route limits to the anonymous
  public workflow endpoints.

The executor queue is authenticated by a shared secret and polled in a tight
loop, so it is never throttled here.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import NamedTuple

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.app.core.config import get_settings
from src.app.core.logging import get_logger
from src.app.core.redis import get_redis
from src.app.core.shutdown import SURFACE_INTERNAL, surface_for_path

logger = get_logger(__name__)

REDIS_KEY_PREFIX = "global_ratelimit"

EXEMPT_PATHS = frozenset({"/health", "/metrics", "/docs", "/openapi.json", "/redoc"})

THROTTLED_MESSAGE = "Too many requests. Please slow down."
RETRY_AFTER_SECONDS = 1

# KEYS[1] bucket key; ARGV rate, burst, now, ttl. Returns 1 when a token was taken.
_REDIS_TOKEN_BUCKET_SCRIPT = """
local state = redis.call('HMGET', KEYS[1], 'tokens', 'last_update')
local rate, burst = tonumber(ARGV[1]), tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local tokens = tonumber(state[1]) or burst
local since = now - (tonumber(state[2]) or now)
tokens = math.min(burst, tokens + since * rate)
local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end
redis.call('HSET', KEYS[1], 'tokens', tokens, 'last_update', now)
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[4]))
return allowed
"""

_script_sha: str | None = None


@dataclass
class TokenBucket:
    """Process-local bucket used when Redis is not available."""

    tokens: float
    last_update: float

    def take(self, now: float, rate: float, burst: float) -> bool:
        self.tokens = min(burst, self.tokens + (now - self.last_update) * rate)
        self.last_update = now
        if self.tokens < 1:
            return False
        self.tokens -= 1
        return True


class BucketPolicy(NamedTuple):
    rate: int
    burst: int

    @property
    def ttl(self) -> int:
        # Long enough to refill an empty bucket, plus a minute
        return int(self.burst / self.rate) + 60


_rate_limit_buckets: dict[str, TokenBucket] = {}
_rate_limit_lock = asyncio.Lock()


def _current_policy() -> BucketPolicy:
    settings = get_settings()
    return BucketPolicy(settings.global_rate_limit_per_second, settings.global_rate_limit_burst)


def get_rate_limit_key(request: Request) -> str:
    """Bucket key for a request: the client address and nothing else.

    Request fields such as ``orgId`` are caller-controlled. Folding them into
    the key would let a client mint a fresh bucket per request.
    """
    return get_remote_address(request) or "unknown"


def create_limiter() -> Limiter:
    """Build the slowapi limiter for per-route limits on public endpoints."""
    settings = get_settings()
    if settings.app_env == "testing":
        logger.info("Route rate limits disabled (testing environment)")
        return Limiter(key_func=get_rate_limit_key, enabled=False)

    # slowapi talks to Redis synchronously, so the plain redis:// URL is used as-is
    backend = "redis" if settings.redis_url else "memory"
    logger.info("Route rate limits enabled", backend=backend)
    return Limiter(key_func=get_rate_limit_key, storage_uri=settings.redis_url or "memory://")


limiter = create_limiter()


def is_throttled_path(path: str) -> bool:
    if path in EXEMPT_PATHS:
        return False
    return surface_for_path(path) != SURFACE_INTERNAL


async def _check_in_memory_rate_limit(client_ip: str) -> bool:
    """Take a token from this process's bucket for ``client_ip``."""
    policy = _current_policy()
    now = time.time()

    async with _rate_limit_lock:
        bucket = _rate_limit_buckets.get(client_ip)
        if bucket is None:
            bucket = _rate_limit_buckets[client_ip] = TokenBucket(float(policy.burst), now)
        return bucket.take(now, policy.rate, policy.burst)


async def _get_or_register_script(redis: object) -> str:
    """SCRIPT LOAD the bucket script once and reuse its SHA for EVALSHA."""
    global _script_sha
    if _script_sha is None:
        _script_sha = await redis.script_load(_REDIS_TOKEN_BUCKET_SCRIPT)  # type: ignore[attr-defined]
    return _script_sha


async def _check_redis_rate_limit(redis: object, client_ip: str) -> bool:
    policy = _current_policy()
    sha = await _get_or_register_script(redis)
    allowed = await redis.evalsha(  # type: ignore[attr-defined]
        sha,
        1,
        f"{REDIS_KEY_PREFIX}:{client_ip}",
        str(policy.rate),
        str(policy.burst),
        str(time.time()),
        str(policy.ttl),
    )
    return allowed == 1


async def _check_global_rate_limit(client_ip: str) -> bool:
    """Shared bucket when Redis answers, the local one when it does not."""
    global _script_sha
    if get_settings().app_env == "testing":
        return True

    redis = await get_redis()
    if redis is None:
        return await _check_in_memory_rate_limit(client_ip)

    try:
        return await _check_redis_rate_limit(redis, client_ip)
    except Exception as e:
        logger.warning(
            "Redis rate limit check failed, using local bucket",
            error=str(e),
            client_ip=client_ip,
        )
        # A restarted Redis has forgotten the script
        _script_sha = None
        return await _check_in_memory_rate_limit(client_ip)


def _too_many_requests() -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": THROTTLED_MESSAGE, "retry_after": RETRY_AFTER_SECONDS},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


async def global_rate_limit_middleware(request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
    """Refuse requests from clients that have drained their bucket.

    Runs before authentication, so anonymous floods are cut off without a
    database round trip.
    """
    path = request.url.path
    if not is_throttled_path(path):
        return await call_next(request)

    client_ip = get_rate_limit_key(request)
    if await _check_global_rate_limit(client_ip):
        return await call_next(request)

    logger.warning("Global rate limit exceeded", client_ip=client_ip, path=path)
    return _too_many_requests()
