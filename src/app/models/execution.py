"""Execution, queue entry and execution log models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.app.models.base import utc_now
from src.app.models.enums import ExecutionStatus, JobStatus, LogLevel


def default_context() -> dict[str, Any]:
    return {"variables": {}, "nodeOutputs": {}, "errors": []}


def default_metrics() -> dict[str, Any]:
    return {"totalDurationMs": 0, "nodeMetrics": {}}


class WorkflowExecution(SQLModel, table=True):
    """One run of a workflow at a captured version.

    ``trigger`` is written once at admission and never updated.
    """

    __tablename__ = "workflow_executions"
    __table_args__ = (
        Index("ix_workflow_executions_workflow_started", "workflow_id", "started_at"),
        Index("ix_workflow_executions_org_status", "organization_id", "status"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    workflow_id: str = Field(max_length=32)
    workflow_version: int
    organization_id: str = Field(foreign_key="public.organizations.id", max_length=32)

    trigger: dict[str, Any] = Field(sa_column=Column(JSONB, nullable=False))

    status: str = Field(default=ExecutionStatus.PENDING.value, max_length=20)
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = Field(default=None)

    current_node_id: str | None = Field(default=None, max_length=100)
    completed_nodes: list[str] = Field(default_factory=list, sa_column=Column(JSONB, nullable=False))
    failed_nodes: list[str] = Field(default_factory=list, sa_column=Column(JSONB, nullable=False))
    skipped_nodes: list[str] = Field(default_factory=list, sa_column=Column(JSONB, nullable=False))

    context: dict[str, Any] = Field(
        default_factory=default_context,
        sa_column=Column(JSONB, nullable=False),
    )
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONB, nullable=True))
    metrics: dict[str, Any] = Field(
        default_factory=default_metrics,
        sa_column=Column(JSONB, nullable=False),
    )

    @property
    def status_enum(self) -> ExecutionStatus:
        return ExecutionStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status_enum.is_terminal


class WorkflowJob(SQLModel, table=True):
    """Durable queue entry consumed by the external executor."""

    __tablename__ = "workflow_jobs"
    __table_args__ = (
        Index("ix_workflow_jobs_claim", "status", "priority", "run_at"),
        Index("ix_workflow_jobs_org_status", "organization_id", "status"),
        Index("ix_workflow_jobs_expires_at", "expires_at"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    workflow_id: str = Field(max_length=32)
    execution_id: UUID = Field(
        foreign_key="public.workflow_executions.id", unique=True, ondelete="CASCADE"
    )
    organization_id: str = Field(foreign_key="public.organizations.id", max_length=32)

    status: str = Field(default=JobStatus.PENDING.value, max_length=20)
    priority: int = Field(default=1)
    trigger: dict[str, Any] = Field(sa_column=Column(JSONB, nullable=False))

    run_at: datetime = Field(default_factory=utc_now)
    locked_at: datetime | None = Field(default=None)
    locked_by: str | None = Field(default=None, max_length=100)

    attempts: int = Field(default=0)
    max_attempts: int = Field(default=3)
    last_error: str | None = Field(default=None, max_length=4000)
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONB, nullable=True))

    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = Field(default=None)
    expires_at: datetime

    @property
    def status_enum(self) -> JobStatus:
        return JobStatus(self.status)


class ExecutionLog(SQLModel, table=True):
    """Append-only log line written by the executor."""

    __tablename__ = "execution_logs"
    __table_args__ = (
        Index("ix_execution_logs_execution_timestamp", "execution_id", "timestamp"),
        Index("ix_execution_logs_expires_at", "expires_at"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    execution_id: UUID = Field(foreign_key="public.workflow_executions.id", ondelete="CASCADE")
    node_id: str = Field(max_length=100)
    timestamp: datetime = Field(default_factory=utc_now)
    level: str = Field(default=LogLevel.INFO.value, max_length=10)
    event: str = Field(max_length=50)
    message: str = Field(max_length=4000)
    data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONB, nullable=True))
    expires_at: datetime
