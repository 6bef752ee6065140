"""Workflow schemas for API request/response."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.app.schemas.base import CamelModel
from src.app.schemas.pagination import OffsetPagination

# Stored in NOT NULL columns: an update may omit them but never null them
REQUIRED_DOCUMENTS = ("canvas", "settings", "variables", "tags")


class WorkflowCanvas(BaseModel):
    """Editor graph. Other keys such as the viewport are stored as sent."""

    model_config = ConfigDict(extra="allow")

    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]


class WorkflowCreate(CamelModel):
    """Schema for creating a workflow. Omitted documents get platform defaults."""

    org_id: str | None = Field(default=None, max_length=32)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    canvas: WorkflowCanvas | None = None
    settings: dict[str, Any] | None = None
    variables: list[dict[str, Any]] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Workflow name cannot be empty or whitespace only")
        return v


class WorkflowUpdate(CamelModel):
    """Partial update. Changing ``canvas`` or ``settings`` bumps the version."""

    org_id: str | None = Field(default=None, max_length=32)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    canvas: WorkflowCanvas | None = None
    settings: dict[str, Any] | None = None
    variables: list[dict[str, Any]] | None = None
    tags: list[str] | None = None
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Workflow name cannot be empty or whitespace only")
        return v

    @field_validator(*REQUIRED_DOCUMENTS, mode="before")
    @classmethod
    def reject_null_documents(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Value cannot be null; omit the field to keep the stored value")
        return v


class WorkflowRead(CamelModel):
    """Schema for reading a workflow."""

    id: str
    organization_id: str
    name: str
    description: str | None
    slug: str
    canvas: dict[str, Any]
    settings: dict[str, Any]
    variables: list[dict[str, Any]]
    input_schema: dict[str, Any] | None
    output_schema: dict[str, Any] | None
    tags: list[str]
    status: str
    version: int
    published_version: int | None
    stats: dict[str, Any]
    created_by: UUID | None
    last_modified_by: UUID | None
    created_at: datetime
    updated_at: datetime


class WorkflowListResponse(CamelModel):
    workflows: list[WorkflowRead]
    pagination: OffsetPagination


class WorkflowStatusUpdate(CamelModel):
    """Status change request.

    Both fields are validated by the endpoint so callers get the documented
    400 messages instead of a schema error.
    """

    org_id: str | None = None
    status: str | None = None


class WorkflowStatusResponse(CamelModel):
    workflow: WorkflowRead
