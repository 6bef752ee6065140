from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.app.api.middlewares import setup_middlewares
from src.app.api.v1.router import api_router
from src.app.core.config import Settings, get_settings
from src.app.core.db import dispose_engine
from src.app.core.exceptions import setup_exception_handlers
from src.app.core.health import setup_health_endpoint, setup_metrics
from src.app.core.logging import get_logger, setup_logging
from src.app.core.rate_limit import limiter
from src.app.core.redis import close_redis
from src.app.core.shutdown import request_tracker
from src.app.temporal.client import close_temporal_client

logger = get_logger(__name__)

OPENAPI_TAGS = [
    {"name": "workflows", "description": "Workflow definitions, status and execution"},
    {"name": "executions", "description": "Execution status, progress, retry and cancel"},
    {"name": "public", "description": "Unauthenticated workflow views and execution links"},
    {"name": "organizations", "description": "Organization queue status"},
    {"name": "internal", "description": "Job queue endpoints for the workflow executor"},
]


async def _drain(grace_period: int) -> None:
    """Stop admitting requests and wait for in-flight ones, up to ``grace_period`` seconds."""
    logger.info(
        "Draining in-flight requests",
        in_flight=request_tracker.in_flight_by_surface(),
        grace_period=grace_period,
    )
    await request_tracker.start_shutdown()
    if not await request_tracker.wait_for_drain(timeout=grace_period):
        logger.warning(
            "Grace period elapsed with requests still running",
            in_flight=request_tracker.in_flight_by_surface(),
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info("API starting", app=settings.app_name, environment=settings.app_env)

    yield

    await _drain(settings.shutdown_grace_period)
    await close_redis()
    await close_temporal_client()
    await dispose_engine()
    logger.info("API stopped")


def _docs_urls(settings: Settings) -> dict[str, str | None]:
    if not settings.enable_openapi:
        return {"docs_url": None, "redoc_url": None, "openapi_url": None}
    return {"docs_url": "/docs", "redoc_url": "/redoc", "openapi_url": "/openapi.json"}


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Workflow execution lifecycle API: admission, queueing and progress",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        **_docs_urls(settings),
    )
    app.state.limiter = limiter

    setup_exception_handlers(app)
    setup_middlewares(app, settings)
    app.include_router(api_router)
    setup_metrics(app)
    setup_health_endpoint(app)
    return app


app = create_app()
