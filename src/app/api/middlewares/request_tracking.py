"""Request tracking middleware for graceful shutdown."""

from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.app.core.shutdown import request_tracker, surface_for_path

UNTRACKED_PATHS = frozenset({"/health", "/metrics"})


async def request_tracking_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Count the request against its API surface until the response is produced."""
    path = request.url.path
    if path in UNTRACKED_PATHS:
        return await call_next(request)

    async with request_tracker.track_request(surface_for_path(path)):
        return await call_next(request)
