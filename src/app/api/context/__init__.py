"""Request context management for API layer.

Provides context variables for tracking request-scoped state:
- AuditContext: IP, user-agent, request_id for audit logging and trigger sources
"""

from src.app.api.context.audit_context import (
    UNKNOWN_IP,
    AuditContext,
    clear_audit_context,
    get_audit_context,
    get_client_ip,
    get_request_source,
    set_audit_context,
)

__all__ = [
    "UNKNOWN_IP",
    "AuditContext",
    "clear_audit_context",
    "get_audit_context",
    "get_client_ip",
    "get_request_source",
    "set_audit_context",
]
