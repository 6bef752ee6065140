"""Schemas for unauthenticated public workflow endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from src.app.schemas.base import CamelModel
from src.app.schemas.execution import ExecutionLogRead, ProgressRead


class PublicWorkflowRead(CamelModel):
    """Public projection of a workflow.

    Settings, organization and authorship are never part of it. The
    metadata fields are only populated when the caller asks for them.
    """

    id: str
    name: str
    description: str | None
    slug: str
    canvas: dict[str, Any]
    status: str
    version: int
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    stats: dict[str, Any] | None = None
    variables: list[dict[str, Any]] | None = None
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None


class PublicWorkflowResponse(CamelModel):
    workflow: PublicWorkflowRead


class PublicExecuteRequest(CamelModel):
    token: str | None = Field(default=None, max_length=512)
    payload: dict[str, Any] = Field(default_factory=dict)


class PublicExecutionRead(CamelModel):
    """Sanitized execution status. Context and trigger source are omitted."""

    id: UUID
    workflow_id: str
    status: str
    started_at: datetime
    completed_at: datetime | None
    current_node_id: str | None
    progress: ProgressRead
    result: dict[str, Any] | None
    duration_ms: int | None = None
    logs: list[ExecutionLogRead] | None = None


class PublicExecutionResponse(CamelModel):
    execution: PublicExecutionRead
