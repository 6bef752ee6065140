"""
Queue Maintenance Workflow.

Keeps the execution queue healthy:
1. Releases job locks held by executors that stopped reporting
2. Deletes jobs and log entries past their expiry
3. Deletes terminal executions past the retention window

Designed to be run on a schedule (see ``maintenance_schedule`` in settings).
"""

from dataclasses import dataclass
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.app.temporal.activities import (
        purge_expired_jobs,
        purge_expired_logs,
        purge_old_executions,
        release_stale_locks,
    )

ACTIVITY_TIMEOUT = timedelta(minutes=5)
ACTIVITY_RETRY = RetryPolicy(maximum_attempts=3, initial_interval=timedelta(seconds=2))


@dataclass
class QueueMaintenanceInput:
    lock_timeout_seconds: int = 300
    execution_retention_days: int = 30


@workflow.defn
class QueueMaintenanceWorkflow:
    """Run all queue maintenance activities in parallel and report counts."""

    @workflow.run
    async def run(self, data: QueueMaintenanceInput) -> dict[str, int]:
        """
        Returns:
            dict with counts per activity:
            {
                "released_locks": int,
                "expired_jobs": int,
                "expired_logs": int,
                "old_executions": int,
                "total": int
            }
        """
        workflow.logger.info("Starting queue maintenance")

        released_task = workflow.execute_activity(
            release_stale_locks,
            data.lock_timeout_seconds,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=ACTIVITY_RETRY,
        )
        jobs_task = workflow.execute_activity(
            purge_expired_jobs,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=ACTIVITY_RETRY,
        )
        logs_task = workflow.execute_activity(
            purge_expired_logs,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=ACTIVITY_RETRY,
        )
        executions_task = workflow.execute_activity(
            purge_old_executions,
            data.execution_retention_days,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=ACTIVITY_RETRY,
        )

        result = {
            "released_locks": await released_task,
            "expired_jobs": await jobs_task,
            "expired_logs": await logs_task,
            "old_executions": await executions_task,
        }
        result["total"] = sum(result.values())

        workflow.logger.info(
            f"Queue maintenance complete: {result['released_locks']} locks released, "
            f"{result['expired_jobs']} jobs, {result['expired_logs']} logs, "
            f"{result['old_executions']} executions deleted (total: {result['total']})"
        )
        return result
