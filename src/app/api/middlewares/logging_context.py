"""Logging context middleware for request correlation."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.app.core.logging import bind_request_context, clear_request_context
from src.app.core.shutdown import surface_for_path


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Bind request id, method, path and API surface for every log line of the request."""
    path = request.url.path
    clear_request_context()
    bind_request_context(correlation_id.get(), request.method, path, surface_for_path(path))
    try:
        return await call_next(request)
    finally:
        clear_request_context()
