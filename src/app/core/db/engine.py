"""Async database engine management."""

import ssl
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.app.core.config import get_settings

_engine: AsyncEngine | None = None


def _ssl_context(ssl_mode: str) -> ssl.SSLContext | None:
    """Map a libpq-style sslmode onto an SSL context for asyncpg."""
    if ssl_mode == "disable":
        return None
    context = ssl.create_default_context()
    if ssl_mode in ("prefer", "require"):
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    elif ssl_mode in ("verify-ca", "verify-full"):
        context.check_hostname = ssl_mode == "verify-full"
        context.verify_mode = ssl.CERT_REQUIRED
    return context


def _get_connect_args() -> dict[str, Any]:
    """asyncpg connection arguments.

    ``lock_timeout`` bounds how long admission waits on an organization row
    lock; the job claim query never waits since it uses SKIP LOCKED.
    """
    settings = get_settings()
    connect_args: dict[str, Any] = {
        "statement_cache_size": settings.database_statement_cache_size,
        "server_settings": {
            "application_name": settings.app_name,
            "lock_timeout": str(settings.database_lock_timeout_ms),
        },
    }
    context = _ssl_context(settings.database_ssl_mode)
    if context is not None:
        connect_args["ssl"] = context
    return connect_args


def get_engine() -> AsyncEngine:
    """Get or create the database engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            connect_args=_get_connect_args(),
        )
    return _engine


async def dispose_engine() -> None:
    """Dispose the database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
