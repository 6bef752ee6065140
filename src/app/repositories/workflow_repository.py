"""Repository for Workflow entity."""

from collections.abc import Iterable

from sqlalchemy import func
from sqlmodel import select

from src.app.models import Workflow, WorkflowStatus
from src.app.repositories.base import BaseRepository


class WorkflowRepository(BaseRepository[Workflow]):
    """Repository for workflow definitions."""

    model = Workflow

    async def get_for_organization(
        self, organization_id: str, workflow_id: str, *, for_update: bool = False
    ) -> Workflow | None:
        """Get a workflow only if it belongs to the organization.

        Args:
            for_update: Lock the row until the transaction ends.
        """
        query = select(Workflow).where(
            Workflow.id == workflow_id,
            Workflow.organization_id == organization_id,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_slug(
        self, slug: str, statuses: Iterable[str] | None = None
    ) -> Workflow | None:
        """Get a workflow by its global slug, optionally restricted to statuses."""
        query = select(Workflow).where(Workflow.slug == slug)
        if statuses is not None:
            query = query.where(Workflow.status.in_(list(statuses)))  # type: ignore[attr-defined]
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(select(Workflow.id).where(Workflow.slug == slug))
        return result.first() is not None

    async def list_for_organization(
        self,
        organization_id: str,
        status: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Workflow], int]:
        """List an organization's workflows, most recently updated first."""
        query = select(Workflow).where(Workflow.organization_id == organization_id)
        if status is not None:
            query = query.where(Workflow.status == status)
        return await self.paginate(
            query,
            limit=limit,
            offset=offset,
            order_by=(Workflow.updated_at.desc(), Workflow.id),  # type: ignore[attr-defined]
        )

    async def count_active(self, organization_id: str) -> int:
        """Count the organization's workflows in active status."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Workflow)
            .where(
                Workflow.organization_id == organization_id,
                Workflow.status == WorkflowStatus.ACTIVE.value,
            )
        )
        return int(result.scalar_one())
