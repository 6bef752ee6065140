"""Execution schemas for API request/response."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from src.app.schemas.base import CamelModel
from src.app.schemas.pagination import OffsetPagination


class ExecuteWorkflowRequest(CamelModel):
    org_id: str | None = Field(default=None, max_length=32)
    payload: dict[str, Any] = Field(default_factory=dict)


class ExecuteWorkflowResponse(CamelModel):
    execution_id: UUID
    status: str
    message: str


class ExecutionLogRead(CamelModel):
    id: UUID
    node_id: str
    timestamp: datetime
    level: str
    event: str
    message: str
    data: dict[str, Any] | None = None


class ExecutionRead(CamelModel):
    """Full execution record as stored."""

    id: UUID
    workflow_id: str
    workflow_version: int
    organization_id: str
    trigger: dict[str, Any]
    status: str
    started_at: datetime
    completed_at: datetime | None
    current_node_id: str | None
    completed_nodes: list[str]
    failed_nodes: list[str]
    skipped_nodes: list[str]
    context: dict[str, Any]
    result: dict[str, Any] | None
    metrics: dict[str, Any]


class ProgressRead(CamelModel):
    """Counts of observed node outcomes. ``total`` is their sum."""

    completed: int
    failed: int
    skipped: int
    total: int


class JobDetails(CamelModel):
    id: UUID
    status: str
    attempts: int
    max_attempts: int
    last_error: str | None
    run_at: datetime
    locked_at: datetime | None
    locked_by: str | None
    created_at: datetime
    completed_at: datetime | None
    can_retry: bool
    can_cancel: bool
    wait_time_ms: int | None
    is_stale: bool


class ExecutionDetailResponse(CamelModel):
    execution: ExecutionRead
    progress: ProgressRead
    logs: list[ExecutionLogRead] | None = None
    job: JobDetails | None = None


class ExecutionActionRequest(CamelModel):
    action: str | None = None


class ExecutionActionResponse(CamelModel):
    success: bool
    message: str
    job: JobDetails


class ExecutionListItem(ExecutionRead):
    logs: list[ExecutionLogRead] | None = None


class ExecutionListResponse(CamelModel):
    executions: list[ExecutionListItem]
    pagination: OffsetPagination
