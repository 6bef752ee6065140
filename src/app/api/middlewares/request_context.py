"""Per-request caller metadata for audit entries and execution triggers."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.app.api.context import clear_audit_context, get_client_ip, set_audit_context


async def request_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Record the caller's address, user agent and request id for this request.

    Only proxy headers are trusted for the address. Without them the address
    stays unset and triggers record ``unknown`` instead of the proxy itself.
    """
    headers = request.headers
    set_audit_context(
        ip_address=get_client_ip(headers.get("x-forwarded-for"), headers.get("x-real-ip")),
        user_agent=headers.get("user-agent"),
        request_id=correlation_id.get(),
    )
    try:
        return await call_next(request)
    finally:
        clear_audit_context()
