"""Database cleanup utilities for test fixtures.

These utilities handle proper FK-constraint-aware cleanup of test data.
The delete order matters due to foreign key relationships.
"""

from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

# Children first; every table is keyed by organization_id
_ORGANIZATION_TABLES = (
    "workflow_jobs",
    "workflow_executions",
    "workflows",
    "organization_usage",
    "audit_logs",
    "organization_memberships",
)


async def cleanup_organization_cascade(conn: AsyncConnection, organization_id: str) -> None:
    """Delete an organization and everything it owns.

    Execution logs go with their executions (ON DELETE CASCADE).
    """
    for table in _ORGANIZATION_TABLES:
        await conn.execute(
            text(f"DELETE FROM public.{table} WHERE organization_id = :id"),
            {"id": organization_id},
        )
    await conn.execute(
        text("DELETE FROM public.organizations WHERE id = :id"),
        {"id": organization_id},
    )


async def cleanup_user_cascade(conn: AsyncConnection, user_id: UUID) -> None:
    """Delete user and all related data in correct FK order.

    Order: audit entries -> memberships -> user
    """
    await conn.execute(
        text("DELETE FROM public.audit_logs WHERE user_id = :id"),
        {"id": user_id},
    )
    await conn.execute(
        text("DELETE FROM public.organization_memberships WHERE user_id = :id"),
        {"id": user_id},
    )
    await conn.execute(
        text("DELETE FROM public.users WHERE id = :id"),
        {"id": user_id},
    )
