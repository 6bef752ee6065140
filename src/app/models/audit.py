"""Audit log model for tracking organization-scoped actions."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.app.models.base import utc_now


class AuditAction(str, Enum):
    """Audit action types for type-safe logging."""

    # Workflow definition
    WORKFLOW_CREATE = "workflow.create"
    WORKFLOW_UPDATE = "workflow.update"
    WORKFLOW_DELETE = "workflow.delete"
    WORKFLOW_STATUS_CHANGE = "workflow.status_change"

    # Execution lifecycle
    WORKFLOW_EXECUTE = "workflow.execute"
    EXECUTION_RETRY = "execution.retry"
    EXECUTION_CANCEL = "execution.cancel"


class AuditStatus(str, Enum):
    """Audit log status."""

    SUCCESS = "success"
    FAILURE = "failure"


class AuditLog(SQLModel, table=True):
    """Audit log for tracking organization-scoped actions."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_org_created", "organization_id", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Context
    organization_id: str = Field(foreign_key="public.organizations.id", max_length=32)
    user_id: UUID | None = Field(foreign_key="public.users.id", index=True, default=None)

    # Action details
    action: str = Field(max_length=50)  # AuditAction value
    entity_type: str = Field(max_length=50)  # "workflow", "execution"
    entity_id: str | None = Field(default=None, max_length=64)

    # Change tracking (for update operations)
    changes: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSONB, nullable=True),
    )

    # Request metadata
    ip_address: str | None = Field(max_length=45, default=None)  # IPv4/IPv6
    user_agent: str | None = Field(max_length=500, default=None)
    request_id: str | None = Field(max_length=36, default=None)  # Correlation ID

    # Result
    status: str = Field(default=AuditStatus.SUCCESS.value, max_length=20)
    error_message: str | None = Field(max_length=1000, default=None)

    created_at: datetime = Field(default_factory=utc_now)
