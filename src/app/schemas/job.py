"""Schemas for the executor-facing job queue endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from src.app.models import LogLevel, NodeOutcome
from src.app.schemas.base import CamelModel


class ClaimJobRequest(CamelModel):
    worker_id: str = Field(min_length=1, max_length=100)


class JobRead(CamelModel):
    id: UUID
    workflow_id: str
    execution_id: UUID
    organization_id: str
    status: str
    priority: int
    trigger: dict[str, Any]
    run_at: datetime
    locked_at: datetime | None
    locked_by: str | None
    attempts: int
    max_attempts: int
    last_error: str | None
    result: dict[str, Any] | None
    created_at: datetime
    completed_at: datetime | None


class CompleteJobRequest(CamelModel):
    result: dict[str, Any] | None = None
    duration_ms: int | None = Field(default=None, ge=0)


class FailJobRequest(CamelModel):
    error: str = Field(min_length=1)
    retryable: bool = True


class NodeOutcomeReport(CamelModel):
    node_id: str = Field(min_length=1, max_length=100)
    outcome: NodeOutcome
    output: Any = None
    error: str | None = None
    duration_ms: int | None = Field(default=None, ge=0)


class NodeOutcomeResponse(CamelModel):
    execution_id: UUID
    current_node_id: str | None
    completed_nodes: list[str]
    failed_nodes: list[str]
    skipped_nodes: list[str]


class LogEntryCreate(CamelModel):
    node_id: str = Field(min_length=1, max_length=100)
    level: LogLevel = LogLevel.INFO
    event: str = Field(min_length=1, max_length=50)
    message: str = Field(max_length=4000)
    data: dict[str, Any] | None = None


class AppendLogsRequest(CamelModel):
    entries: list[LogEntryCreate] = Field(min_length=1, max_length=500)


class AppendLogsResponse(CamelModel):
    appended: int


class QueueStatusRead(CamelModel):
    pending: int
    processing: int
    failed: int
    completed: int
    oldest_pending_at: datetime | None
