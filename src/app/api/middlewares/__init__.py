"""HTTP middleware stack."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.core.config import Settings
from src.app.core.rate_limit import global_rate_limit_middleware

from .logging_context import logging_context_middleware
from .request_context import request_context_middleware
from .request_tracking import request_tracking_middleware
from .security_headers import SecurityHeadersMiddleware, security_headers_for

__all__ = [
    "setup_middlewares",
    "SecurityHeadersMiddleware",
    "global_rate_limit_middleware",
    "logging_context_middleware",
    "request_context_middleware",
    "request_tracking_middleware",
]

# Listed outermost first. Starlette wraps in reverse registration order, so
# these are registered from the end of the tuple.
_HTTP_MIDDLEWARES = (
    logging_context_middleware,
    request_context_middleware,
    request_tracking_middleware,
    global_rate_limit_middleware,
)


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Install the middleware stack.

    Request order: request id, CORS, security headers, logging context,
    audit context, in-flight tracking, then the per-IP rate limit.
    """
    for middleware in reversed(_HTTP_MIDDLEWARES):
        app.middleware("http")(middleware)

    app.add_middleware(SecurityHeadersMiddleware, headers=security_headers_for(settings))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Worker-Secret", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    # Added last so it wraps everything and the id exists before logging binds it
    app.add_middleware(CorrelationIdMiddleware)
