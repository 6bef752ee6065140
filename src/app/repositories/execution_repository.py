"""Repository for WorkflowExecution entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import select

from src.app.models import ExecutionStatus, WorkflowExecution
from src.app.repositories.base import BaseRepository

TERMINAL_EXECUTION_STATUSES = (
    ExecutionStatus.COMPLETED.value,
    ExecutionStatus.FAILED.value,
    ExecutionStatus.CANCELLED.value,
)


class ExecutionRepository(BaseRepository[WorkflowExecution]):
    """Repository for workflow executions."""

    model = WorkflowExecution

    async def get_for_update(self, execution_id: UUID) -> WorkflowExecution | None:
        """Get an execution and lock its row until the transaction ends."""
        result = await self.session.execute(
            select(WorkflowExecution)
            .where(WorkflowExecution.id == execution_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_for_workflow(
        self,
        workflow_id: str,
        status: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[WorkflowExecution], int]:
        """List a workflow's executions, newest first."""
        query = select(WorkflowExecution).where(WorkflowExecution.workflow_id == workflow_id)
        if status is not None:
            query = query.where(WorkflowExecution.status == status)
        return await self.paginate(
            query,
            limit=limit,
            offset=offset,
            order_by=(
                WorkflowExecution.started_at.desc(),  # type: ignore[attr-defined]
                WorkflowExecution.id,
            ),
        )

    async def purge_completed_before(self, cutoff: datetime) -> int:
        """Delete terminal executions completed before ``cutoff``.

        Jobs and logs referencing them are removed by ON DELETE CASCADE.

        Returns:
            Number of executions deleted
        """
        result = await self.session.execute(
            delete(WorkflowExecution).where(
                WorkflowExecution.status.in_(TERMINAL_EXECUTION_STATUSES),  # type: ignore[attr-defined]
                WorkflowExecution.completed_at < cutoff,  # type: ignore[operator]
            )
        )
        return result.rowcount  # type: ignore[attr-defined,no-any-return]
