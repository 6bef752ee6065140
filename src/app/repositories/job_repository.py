"""Repository for WorkflowJob entity (the execution queue)."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, update
from sqlmodel import select

from src.app.models import JobStatus, WorkflowJob
from src.app.repositories.base import BaseRepository

OUTSTANDING_JOB_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)


class JobRepository(BaseRepository[WorkflowJob]):
    """Repository for queued jobs.

    Claiming uses ``FOR UPDATE SKIP LOCKED`` so concurrent executors never
    receive the same job.
    """

    model = WorkflowJob

    async def lock_organization_queue(self, organization_id: str) -> None:
        """Serialize admission for one organization until the transaction ends.

        Uses a transaction-scoped advisory lock keyed by the organization id,
        so the depth check and the usage increment see each other's writes.
        """
        await self.session.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(organization_id)))
        )

    async def count_outstanding(self, organization_id: str) -> int:
        """Count the organization's pending and processing jobs."""
        result = await self.session.execute(
            select(func.count())
            .select_from(WorkflowJob)
            .where(
                WorkflowJob.organization_id == organization_id,
                WorkflowJob.status.in_(OUTSTANDING_JOB_STATUSES),  # type: ignore[attr-defined]
            )
        )
        return int(result.scalar_one())

    async def get_by_execution_id(
        self, execution_id: UUID, *, for_update: bool = False
    ) -> WorkflowJob | None:
        query = select(WorkflowJob).where(WorkflowJob.execution_id == execution_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_update(self, job_id: UUID) -> WorkflowJob | None:
        result = await self.session.execute(
            select(WorkflowJob).where(WorkflowJob.id == job_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def claim_next(self, now: datetime, stale_before: datetime) -> WorkflowJob | None:
        """Lock the next runnable job, highest priority first then oldest run_at.

        Runnable means pending or processing, due, and either unlocked or
        holding a lock taken before ``stale_before``.
        """
        result = await self.session.execute(
            select(WorkflowJob)
            .where(
                WorkflowJob.status.in_(OUTSTANDING_JOB_STATUSES),  # type: ignore[attr-defined]
                WorkflowJob.run_at <= now,
                or_(
                    WorkflowJob.locked_at.is_(None),  # type: ignore[union-attr]
                    WorkflowJob.locked_at < stale_before,  # type: ignore[operator]
                ),
            )
            .order_by(
                WorkflowJob.priority.desc(),  # type: ignore[attr-defined]
                WorkflowJob.run_at.asc(),  # type: ignore[attr-defined]
            )
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        return result.scalar_one_or_none()

    async def status_counts(self, organization_id: str) -> dict[str, Any]:
        """Count the organization's jobs per status and find the oldest pending one."""
        counts_result = await self.session.execute(
            select(WorkflowJob.status, func.count())
            .where(WorkflowJob.organization_id == organization_id)
            .group_by(WorkflowJob.status)
        )
        counts = {status.value: 0 for status in JobStatus}
        for status, count in counts_result.all():
            counts[status] = int(count)

        oldest_result = await self.session.execute(
            select(func.min(WorkflowJob.created_at)).where(
                WorkflowJob.organization_id == organization_id,
                WorkflowJob.status == JobStatus.PENDING.value,
            )
        )
        counts["oldest_pending_at"] = oldest_result.scalar_one_or_none()
        return counts

    async def release_stale_locks(self, stale_before: datetime) -> int:
        """Return processing jobs with stale locks to pending.

        Returns:
            Number of jobs released
        """
        result = await self.session.execute(
            update(WorkflowJob)
            .where(
                WorkflowJob.status == JobStatus.PROCESSING.value,
                WorkflowJob.locked_at < stale_before,  # type: ignore[operator]
            )
            .values(status=JobStatus.PENDING.value, locked_at=None, locked_by=None)
        )
        return result.rowcount  # type: ignore[attr-defined,no-any-return]

    async def purge_expired(self, now: datetime) -> int:
        """Delete finished jobs past their expiry.

        Pending and processing jobs are kept whatever their expiry, since
        their executions are still waiting on them.

        Returns:
            Number of jobs deleted
        """
        result = await self.session.execute(
            delete(WorkflowJob).where(
                WorkflowJob.expires_at < now,  # type: ignore[operator]
                WorkflowJob.status.not_in(OUTSTANDING_JOB_STATUSES),  # type: ignore[attr-defined]
            )
        )
        return result.rowcount  # type: ignore[attr-defined,no-any-return]
