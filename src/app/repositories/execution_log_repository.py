"""Repository for ExecutionLog entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import select

from src.app.models import ExecutionLog
from src.app.repositories.base import BaseRepository


class ExecutionLogRepository(BaseRepository[ExecutionLog]):
    """Repository for execution logs, read in chronological order."""

    model = ExecutionLog

    async def list_for_execution(
        self,
        execution_id: UUID,
        limit: int,
        level: str | None = None,
        node_id: str | None = None,
    ) -> list[ExecutionLog]:
        """Get up to ``limit`` entries for an execution, oldest first."""
        query = select(ExecutionLog).where(ExecutionLog.execution_id == execution_id)
        if level is not None:
            query = query.where(ExecutionLog.level == level)
        if node_id is not None:
            query = query.where(ExecutionLog.node_id == node_id)
        query = query.order_by(ExecutionLog.timestamp.asc()).limit(limit)  # type: ignore[attr-defined]
        result = await self.session.execute(query)
        return list(result.scalars().all())

    def add_many(self, entries: list[ExecutionLog]) -> None:
        """Add entries to session (no flush/commit)."""
        self.session.add_all(entries)

    async def purge_expired(self, now: datetime) -> int:
        """Delete log entries past their expiry.

        Returns:
            Number of entries deleted
        """
        result = await self.session.execute(
            delete(ExecutionLog).where(ExecutionLog.expires_at < now)
        )
        return result.rowcount  # type: ignore[attr-defined,no-any-return]
