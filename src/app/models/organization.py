"""Organization model - owner of workflows, usage and memberships."""

from datetime import datetime
from functools import partial

from sqlmodel import Field, SQLModel

from src.app.models.base import prefixed_id, utc_now
from src.app.models.enums import PlanTier


class Organization(SQLModel, table=True):
    """Organization registry."""

    __tablename__ = "organizations"
    __table_args__ = {"schema": "public"}

    id: str = Field(default_factory=partial(prefixed_id, "org"), primary_key=True, max_length=32)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=56, unique=True, index=True)
    plan: str = Field(default=PlanTier.FREE.value, max_length=20)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def plan_enum(self) -> PlanTier:
        """Get plan as PlanTier enum, treating unknown values as free."""
        try:
            return PlanTier(self.plan)
        except ValueError:
            return PlanTier.FREE
