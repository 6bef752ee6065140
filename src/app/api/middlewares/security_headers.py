"""Response hardening headers for the JSON API."""

from collections.abc import Mapping

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.app.core.config import Settings

# Swagger UI loads its bundle from jsdelivr and runs an inline bootstrap script
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
    "img-src 'self' data: cdn.jsdelivr.net; "
    "frame-ancestors 'none'"
)

BASE_HEADERS: Mapping[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-Permitted-Cross-Domain-Policies": "none",
}

# Execution state changes from one poll to the next and must never be served stale
NO_STORE_PREFIXES = (
    "/api/v1/executions/",
    "/api/v1/internal/",
    "/api/v1/workflows/public/executions/",
)


def security_headers_for(settings: Settings) -> dict[str, str]:
    """Headers stamped on every response for the given deployment."""
    headers = dict(BASE_HEADERS)
    if settings.enable_openapi or not settings.csp_production:
        headers["Content-Security-Policy"] = DOCS_CSP
    else:
        headers["Content-Security-Policy"] = settings.csp_production
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, headers: Mapping[str, str]):
        super().__init__(app)
        self.headers = dict(headers)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)
        if request.url.path.startswith(NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        return response
