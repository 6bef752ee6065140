"""Audit context management using contextvars.

Stores request metadata (IP address, user agent) for use by AuditService
and for the ``source`` block of execution triggers.
"""

from contextvars import ContextVar
from dataclasses import dataclass

UNKNOWN_IP = "unknown"

# Context variable for audit metadata
_audit_context: ContextVar["AuditContext | None"] = ContextVar("audit_context", default=None)


@dataclass(frozen=True)
class AuditContext:
    """Immutable audit context for the current request."""

    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def set_audit_context(
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_id: str | None = None,
) -> None:
    """Set audit context for the current request."""
    ctx = AuditContext(
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent and len(user_agent) > 500 else user_agent,
        request_id=request_id,
    )
    _audit_context.set(ctx)


def get_audit_context() -> AuditContext | None:
    """Get the current audit context."""
    return _audit_context.get()


def clear_audit_context() -> None:
    """Clear the audit context."""
    _audit_context.set(None)


def get_client_ip(
    forwarded_for: str | None,
    real_ip: str | None = None,
    client_host: str | None = None,
) -> str | None:
    """Extract client IP from proxy headers or the connection.

    Args:
        forwarded_for: Value of X-Forwarded-For header (may contain multiple IPs)
        real_ip: Value of X-Real-IP header
        client_host: Direct client host from the connection

    Returns:
        First IP from X-Forwarded-For, else X-Real-IP, else client host
    """
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs: client, proxy1, proxy2...
        # First IP is the original client
        return forwarded_for.split(",")[0].strip()
    if real_ip:
        return real_ip.strip()
    return client_host


def get_request_source() -> tuple[str, str | None]:
    """Client IP (``unknown`` when no proxy header was sent) and user agent."""
    ctx = get_audit_context()
    if ctx is None:
        return UNKNOWN_IP, None
    return ctx.ip_address or UNKNOWN_IP, ctx.user_agent
