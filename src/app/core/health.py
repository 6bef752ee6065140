"""Health check endpoint with dependency validation and caching."""

import secrets
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text

from src.app.core.config import get_settings
from src.app.core.db import get_session
from src.app.core.redis import get_redis
from src.app.core.shutdown import request_tracker
from src.app.temporal.client import get_temporal_client

_health_cache: dict[str, Any] | None = None
_health_cache_time: float = 0
HEALTH_CACHE_TTL = 10  # seconds

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"


def reset_health_cache() -> None:
    """Reset health cache (for testing)."""
    global _health_cache, _health_cache_time
    _health_cache = None
    _health_cache_time = 0


async def _check_database() -> str:
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        return f"{UNHEALTHY}: {e!s}"
    return HEALTHY


async def _check_temporal() -> str:
    try:
        await get_temporal_client()
    except Exception as e:
        return f"{UNHEALTHY}: {e!s}"
    return HEALTHY


async def _check_redis() -> str:
    redis = await get_redis()
    if redis is None:
        return "not_configured"
    try:
        await redis.ping()
    except Exception as e:
        return f"{UNHEALTHY}: {e!s}"
    return HEALTHY


def overall_status(database: str, temporal: str, redis: str) -> str:
    """Database down is unhealthy; Temporal or Redis down only degrades the service."""
    if database != HEALTHY:
        return UNHEALTHY
    if temporal.startswith(UNHEALTHY) or redis.startswith(UNHEALTHY):
        return DEGRADED
    return HEALTHY


def setup_health_endpoint(app: FastAPI) -> None:
    """Configure the health check endpoint."""

    @app.get("/health", include_in_schema=False)
    async def health() -> JSONResponse:
        global _health_cache, _health_cache_time

        now = time.time()

        if request_tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_requests": request_tracker.in_flight_count,
                    "in_flight_by_surface": request_tracker.in_flight_by_surface(),
                    "message": "Server is shutting down",
                },
                status_code=503,
            )

        if _health_cache and (now - _health_cache_time) < HEALTH_CACHE_TTL:
            cached_response = _health_cache.copy()
            cached_response["cached"] = True
            cached_response["cache_age_seconds"] = round(now - _health_cache_time, 1)
            status_code = 200 if cached_response["status"] == HEALTHY else 503
            return JSONResponse(content=cached_response, status_code=status_code)

        database = await _check_database()
        temporal = await _check_temporal()
        redis = await _check_redis()

        health_status: dict[str, Any] = {
            "status": overall_status(database, temporal, redis),
            "database": database,
            "temporal": temporal,
            "redis": redis,
            "cached": False,
            "timestamp": now,
        }

        _health_cache = health_status
        _health_cache_time = now

        status_code = 200 if health_status["status"] == HEALTHY else 503
        return JSONResponse(content=health_status, status_code=status_code)


def setup_metrics(app: FastAPI) -> None:
    """Configure Prometheus metrics with optional API key protection."""
    settings = get_settings()
    instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics"]).instrument(app)

    if not settings.metrics_api_key:
        instrumentator.expose(app, endpoint="/metrics", include_in_schema=False)
        return

    api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

    async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
        expected = settings.metrics_api_key
        if api_key is None or expected is None or not secrets.compare_digest(api_key, expected):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing metrics API key",
            )

    instrumentator.expose(
        app,
        endpoint="/metrics",
        include_in_schema=False,
        dependencies=[Depends(verify_metrics_key)],
    )
