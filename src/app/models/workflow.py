"""Workflow definition model."""

from datetime import datetime
from functools import partial
from typing import Any
from uuid import UUID

from sqlalchemy import Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.app.models.base import prefixed_id, utc_now
from src.app.models.enums import WorkflowStatus

MANUAL_START_NODE_TYPE = "manual-start"
TRIGGER_TYPE_MARKER = "trigger"

# Statuses a workflow can be executed from
EXECUTABLE_STATUSES = frozenset({WorkflowStatus.ACTIVE.value, WorkflowStatus.DRAFT.value})


def default_canvas() -> dict[str, Any]:
    return {"nodes": [], "edges": [], "viewport": {"x": 0, "y": 0, "zoom": 1}}


def default_settings() -> dict[str, Any]:
    return {
        "executionMode": "auto",
        "maxExecutionTime": 300000,
        "retryPolicy": {
            "maxRetries": 3,
            "backoffMultiplier": 2,
            "initialDelayMs": 1000,
        },
        "errorHandling": "stop",
        "timezone": "UTC",
    }


def default_stats() -> dict[str, Any]:
    return {
        "totalExecutions": 0,
        "successfulExecutions": 0,
        "failedExecutions": 0,
        "avgExecutionTimeMs": 0,
        "lastExecutedAt": None,
    }


def is_trigger_node_type(node_type: str | None) -> bool:
    """True for node types that can start a run."""
    if not node_type:
        return False
    return TRIGGER_TYPE_MARKER in node_type or node_type == MANUAL_START_NODE_TYPE


class Workflow(SQLModel, table=True):
    """Versioned workflow definition owned by an organization.

    ``canvas``, ``settings`` and ``stats`` are JSON documents. Replace them
    with new dicts rather than mutating in place so SQLAlchemy sees the change.
    """

    __tablename__ = "workflows"
    __table_args__ = (
        Index("ix_workflows_org_status", "organization_id", "status"),
        Index("ix_workflows_org_updated", "organization_id", "updated_at"),
        {"schema": "public"},
    )

    id: str = Field(default_factory=partial(prefixed_id, "wf"), primary_key=True, max_length=32)
    organization_id: str = Field(foreign_key="public.organizations.id", max_length=32)
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    slug: str = Field(max_length=50, unique=True, index=True)

    canvas: dict[str, Any] = Field(
        default_factory=default_canvas,
        sa_column=Column(JSONB, nullable=False),
    )
    settings: dict[str, Any] = Field(
        default_factory=default_settings,
        sa_column=Column(JSONB, nullable=False),
    )
    variables: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSONB, nullable=False),
    )
    input_schema: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSONB, nullable=True),
    )
    output_schema: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSONB, nullable=True),
    )
    tags: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSONB, nullable=False),
    )

    status: str = Field(default=WorkflowStatus.DRAFT.value, max_length=20)
    version: int = Field(default=1)
    published_version: int | None = Field(default=None)
    stats: dict[str, Any] = Field(
        default_factory=default_stats,
        sa_column=Column(JSONB, nullable=False),
    )

    created_by: UUID | None = Field(default=None, foreign_key="public.users.id")
    last_modified_by: UUID | None = Field(default=None, foreign_key="public.users.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> WorkflowStatus:
        """Get status as WorkflowStatus enum."""
        return WorkflowStatus(self.status)

    @property
    def nodes(self) -> list[dict[str, Any]]:
        return list((self.canvas or {}).get("nodes") or [])

    @property
    def has_trigger_node(self) -> bool:
        return any(
            is_trigger_node_type(node.get("type"))
            for node in self.nodes
            if isinstance(node, dict)
        )

    @property
    def max_retries(self) -> int:
        retry_policy = (self.settings or {}).get("retryPolicy") or {}
        return int(retry_policy.get("maxRetries", 0))

    @property
    def max_attempts(self) -> int:
        """Retry budget handed to the queue: first attempt plus retries."""
        return self.max_retries + 1

    @property
    def embed_settings(self) -> dict[str, Any]:
        return dict((self.settings or {}).get("embedSettings") or {})
