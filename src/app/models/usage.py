"""Monthly workflow usage per organization."""

from datetime import datetime
from typing import Any

from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.app.models.base import utc_now


def current_period(now: datetime | None = None) -> str:
    """Billing period key for a UTC timestamp, e.g. ``2025-03``."""
    now = now or utc_now()
    return f"{now.year:04d}-{now.month:02d}"


class OrganizationUsage(SQLModel, table=True):
    """Execution counters for one organization and one billing period.

    ``workflow_executions`` is metered when a job is enqueued. The success
    and failure counters move when the executor reports a terminal outcome.
    """

    __tablename__ = "organization_usage"
    __table_args__ = {"schema": "public"}

    organization_id: str = Field(
        foreign_key="public.organizations.id", primary_key=True, max_length=32
    )
    period: str = Field(primary_key=True, max_length=7)
    workflow_executions: int = Field(default=0)
    successful_executions: int = Field(default=0)
    failed_executions: int = Field(default=0)
    by_workflow: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONB, nullable=False),
    )
    updated_at: datetime = Field(default_factory=utc_now)
