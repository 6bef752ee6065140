"""Execution queue maintenance activities.

Each activity runs in its own session and commits its own work. All of them
are idempotent: a second run finds nothing left to release or delete.
"""

from datetime import timedelta

from temporalio import activity

from src.app.core.db import get_session
from src.app.models.base import utc_now
from src.app.repositories.execution_log_repository import ExecutionLogRepository
from src.app.repositories.execution_repository import ExecutionRepository
from src.app.repositories.job_repository import JobRepository


@activity.defn
async def release_stale_locks(lock_timeout_seconds: int) -> int:
    """Return processing jobs whose executor went silent to the pending state.

    Args:
        lock_timeout_seconds: Locks older than this are considered abandoned

    Returns:
        Number of jobs released
    """
    stale_before = utc_now() - timedelta(seconds=lock_timeout_seconds)
    async with get_session() as session:
        count = await JobRepository(session).release_stale_locks(stale_before)
        await session.commit()

    activity.logger.info(f"Released {count} stale job locks")
    return count


@activity.defn
async def purge_expired_jobs() -> int:
    """Delete jobs past their expiry time."""
    async with get_session() as session:
        count = await JobRepository(session).purge_expired(utc_now())
        await session.commit()

    activity.logger.info(f"Deleted {count} expired jobs")
    return count


@activity.defn
async def purge_expired_logs() -> int:
    """Delete execution log entries past their expiry time."""
    async with get_session() as session:
        count = await ExecutionLogRepository(session).purge_expired(utc_now())
        await session.commit()

    activity.logger.info(f"Deleted {count} expired execution log entries")
    return count


@activity.defn
async def purge_old_executions(retention_days: int) -> int:
    """Delete terminal executions completed more than ``retention_days`` ago.

    Their jobs and logs go with them through ON DELETE CASCADE.
    """
    cutoff = utc_now() - timedelta(days=retention_days)
    async with get_session() as session:
        count = await ExecutionRepository(session).purge_completed_before(cutoff)
        await session.commit()

    activity.logger.info(f"Deleted {count} executions older than {retention_days} days")
    return count
