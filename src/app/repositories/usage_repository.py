"""Repository for OrganizationUsage entity."""

from sqlalchemy import Integer, Text, cast, func, literal, update
from sqlalchemy.dialects.postgresql import insert
from sqlmodel import select

from src.app.models import OrganizationUsage
from src.app.models.base import utc_now
from src.app.repositories.base import BaseRepository

UNLIMITED = -1


class UsageRepository(BaseRepository[OrganizationUsage]):
    """Repository for monthly usage counters."""

    model = OrganizationUsage

    async def get_usage(self, organization_id: str, period: str) -> OrganizationUsage | None:
        result = await self.session.execute(
            select(OrganizationUsage).where(
                OrganizationUsage.organization_id == organization_id,
                OrganizationUsage.period == period,
            )
        )
        return result.scalar_one_or_none()

    async def get_execution_count(self, organization_id: str, period: str) -> int:
        result = await self.session.execute(
            select(OrganizationUsage.workflow_executions).where(
                OrganizationUsage.organization_id == organization_id,
                OrganizationUsage.period == period,
            )
        )
        return int(result.scalar_one_or_none() or 0)

    async def increment_executions_if_below(
        self,
        organization_id: str,
        period: str,
        workflow_id: str,
        limit: int,
    ) -> int | None:
        """Atomically add one execution to the period counter while under ``limit``.

        A single INSERT ... ON CONFLICT DO UPDATE ... WHERE statement creates
        the period row on first use and otherwise increments it only when the
        stored count is below the limit. ``limit`` of -1 means unlimited.
        Callers must reject a limit of 0 before calling; the insert branch
        always records the first execution.

        Returns:
            The new execution count, or None when the limit was already reached
        """
        table = OrganizationUsage.__table__  # type: ignore[attr-defined]
        now = utc_now()
        workflow_key = cast(literal(workflow_id), Text)

        stmt = insert(table).values(
            organization_id=organization_id,
            period=period,
            workflow_executions=1,
            successful_executions=0,
            failed_executions=0,
            by_workflow=func.jsonb_build_object(workflow_key, 1),
            updated_at=now,
        )
        by_workflow = table.c.by_workflow
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.organization_id, table.c.period],
            set_={
                "workflow_executions": table.c.workflow_executions + 1,
                "by_workflow": by_workflow.op("||")(
                    func.jsonb_build_object(
                        workflow_key,
                        func.coalesce(by_workflow[workflow_id].astext.cast(Integer), 0) + 1,
                    )
                ),
                "updated_at": now,
            },
            where=None if limit == UNLIMITED else table.c.workflow_executions < limit,
        ).returning(table.c.workflow_executions)

        result = await self.session.execute(stmt)
        count = result.scalar_one_or_none()
        return int(count) if count is not None else None

    async def record_outcome(self, organization_id: str, period: str, success: bool) -> None:
        """Count a terminal execution outcome against the period."""
        column = "successful_executions" if success else "failed_executions"
        table = OrganizationUsage.__table__  # type: ignore[attr-defined]
        await self.session.execute(
            update(table)
            .where(
                table.c.organization_id == organization_id,
                table.c.period == period,
            )
            .values({column: table.c[column] + 1, "updated_at": utc_now()})
        )
