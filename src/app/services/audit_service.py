"""Audit trail for workflow changes and execution actions."""

import contextlib
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.app.api.context import get_audit_context
from src.app.core.logging import get_logger
from src.app.models import AuditAction, AuditLog, AuditStatus
from src.app.repositories import AuditLogRepository

logger = get_logger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 1000


class AuditService:
    """Writes audit entries on a session of its own.

    Entries are best effort. A failed write is logged and swallowed so an
    audit outage never fails the request that triggered it, and entries for
    rejected operations survive the business transaction's rollback.
    """

    def __init__(self, audit_repo: AuditLogRepository, session: AsyncSession):
        self.audit_repo = audit_repo
        self.session = session

    async def log_action(
        self,
        organization_id: str,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID | str | None = None,
        user_id: UUID | None = None,
        changes: dict[str, Any] | None = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        error_message: str | None = None,
    ) -> AuditLog | None:
        """Persist one entry, stamped with the caller's IP, user agent and request id.

        ``entity_id`` is stored as text so execution UUIDs and prefixed
        workflow ids share a column. Returns None when the write failed.
        """
        ctx = get_audit_context()
        entry = AuditLog(
            organization_id=organization_id,
            user_id=user_id,
            action=action.value if isinstance(action, AuditAction) else action,
            entity_type=entity_type,
            entity_id=None if entity_id is None else str(entity_id),
            changes=changes,
            ip_address=ctx and ctx.ip_address,
            user_agent=ctx and ctx.user_agent,
            request_id=ctx and ctx.request_id,
            status=status.value,
            error_message=error_message[:MAX_ERROR_MESSAGE_LENGTH] if error_message else None,
        )

        try:
            self.audit_repo.add(entry)
            await self.session.commit()
        except Exception as e:
            logger.warning(
                "Failed to record audit log",
                action=entry.action,
                entity_type=entity_type,
                error=str(e),
            )
            with contextlib.suppress(Exception):
                await self.session.rollback()
            return None

        logger.debug(
            "Audit log recorded",
            action=entry.action,
            entity_type=entity_type,
            entity_id=entry.entity_id,
        )
        return entry

    async def log_success(
        self,
        organization_id: str,
        action: AuditAction | str,
        entity_type: str,
        **details: Any,
    ) -> AuditLog | None:
        return await self.log_action(
            organization_id, action, entity_type, status=AuditStatus.SUCCESS, **details
        )

    async def log_failure(
        self,
        organization_id: str,
        action: AuditAction | str,
        entity_type: str,
        error_message: str,
        **details: Any,
    ) -> AuditLog | None:
        return await self.log_action(
            organization_id,
            action,
            entity_type,
            status=AuditStatus.FAILURE,
            error_message=error_message,
            **details,
        )
