"""Job queue operations used by the external executor."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.config import get_settings
from src.app.core.logging import get_logger
from src.app.models import (
    ExecutionLog,
    ExecutionStatus,
    JobStatus,
    NodeOutcome,
    WorkflowExecution,
    WorkflowJob,
    current_period,
)
from src.app.models.base import utc_now
from src.app.models.workflow import default_stats
from src.app.repositories import (
    ExecutionLogRepository,
    ExecutionRepository,
    JobRepository,
    WorkflowRepository,
)
from src.app.schemas.job import LogEntryCreate, NodeOutcomeReport
from src.app.services.exceptions import ExecutionNotFoundError, JobStateError
from src.app.services.execution_service import truncate_error
from src.app.services.usage_service import UsageService

logger = get_logger(__name__)

EXECUTION_FAILED = "EXECUTION_FAILED"


def retry_delay(attempts: int) -> timedelta:
    """Exponential backoff: 2^attempts seconds."""
    return timedelta(seconds=2**attempts)


def updated_stats(
    stats: dict[str, Any] | None,
    success: bool,
    duration_ms: int,
    executed_at: datetime,
) -> dict[str, Any]:
    """Fold one terminal outcome into workflow stats.

    ``avgExecutionTimeMs`` is a running mean over all recorded executions.
    Returns a new dict so the JSONB column is marked dirty.
    """
    current = {**default_stats(), **(stats or {})}
    previous_total = int(current["totalExecutions"])
    total = previous_total + 1
    average = (float(current["avgExecutionTimeMs"]) * previous_total + duration_ms) / total

    current["totalExecutions"] = total
    if success:
        current["successfulExecutions"] = int(current["successfulExecutions"]) + 1
    else:
        current["failedExecutions"] = int(current["failedExecutions"]) + 1
    current["avgExecutionTimeMs"] = round(average)
    current["lastExecutedAt"] = executed_at.isoformat()
    return current


def apply_node_outcome(
    execution: WorkflowExecution, report: NodeOutcomeReport, now: datetime
) -> None:
    """Record a node outcome on the execution.

    A node id lives in exactly one outcome list; a later report moves it.
    Every JSON column touched is reassigned, never mutated in place.
    """
    node_id = report.node_id
    lists = {
        NodeOutcome.COMPLETED: [n for n in execution.completed_nodes or [] if n != node_id],
        NodeOutcome.FAILED: [n for n in execution.failed_nodes or [] if n != node_id],
        NodeOutcome.SKIPPED: [n for n in execution.skipped_nodes or [] if n != node_id],
    }
    lists[report.outcome].append(node_id)
    execution.completed_nodes = lists[NodeOutcome.COMPLETED]
    execution.failed_nodes = lists[NodeOutcome.FAILED]
    execution.skipped_nodes = lists[NodeOutcome.SKIPPED]
    execution.current_node_id = node_id

    context = dict(execution.context or {})
    node_outputs = dict(context.get("nodeOutputs") or {})
    if report.output is not None:
        node_outputs[node_id] = report.output
    context["nodeOutputs"] = node_outputs
    errors = list(context.get("errors") or [])
    if report.outcome == NodeOutcome.FAILED:
        errors.append(
            {
                "nodeId": node_id,
                "message": report.error or "Node failed",
                "timestamp": now.isoformat(),
            }
        )
    context["errors"] = errors
    context.setdefault("variables", {})
    execution.context = context

    metrics = dict(execution.metrics or {})
    node_metrics = dict(metrics.get("nodeMetrics") or {})
    entry = dict(node_metrics.get(node_id) or {})
    entry["outcome"] = report.outcome.value
    if report.duration_ms is not None:
        entry["durationMs"] = report.duration_ms
    node_metrics[node_id] = entry
    metrics["nodeMetrics"] = node_metrics
    metrics.setdefault("totalDurationMs", 0)
    execution.metrics = metrics


class QueueService:
    """Claim, complete and fail jobs and record executor reports.

    Executions are only finalized here and through manual cancel; node
    reports against a finished execution are refused.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        execution_repo: ExecutionRepository,
        log_repo: ExecutionLogRepository,
        workflow_repo: WorkflowRepository,
        usage_service: UsageService,
        session: AsyncSession,
    ):
        self.job_repo = job_repo
        self.execution_repo = execution_repo
        self.log_repo = log_repo
        self.workflow_repo = workflow_repo
        self.usage_service = usage_service
        self.session = session

    async def claim(self, worker_id: str) -> WorkflowJob | None:
        """Claim the best runnable job for ``worker_id``.

        Returns:
            The claimed job, or None when nothing is runnable
        """
        now = utc_now()
        stale_before = now - timedelta(seconds=get_settings().job_lock_timeout_seconds)
        try:
            job = await self.job_repo.claim_next(now, stale_before)
            if job is None:
                await self.session.rollback()
                return None

            job.status = JobStatus.PROCESSING.value
            job.locked_at = now
            job.locked_by = worker_id
            job.attempts += 1

            execution = await self.execution_repo.get_for_update(job.execution_id)
            if execution is not None:
                execution.status = ExecutionStatus.RUNNING.value
                execution.started_at = now

            await self.session.commit()
            await self.session.refresh(job)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Job claimed",
            job_id=str(job.id),
            execution_id=str(job.execution_id),
            worker_id=worker_id,
            attempt=job.attempts,
        )
        return job

    async def _get_open_job(self, job_id: UUID) -> WorkflowJob:
        job = await self.job_repo.get_for_update(job_id)
        if job is None:
            raise ExecutionNotFoundError("Job not found")
        if job.status not in (JobStatus.PENDING.value, JobStatus.PROCESSING.value):
            raise JobStateError(f"Job is already {job.status}", conflict=True)
        return job

    async def _record_terminal(
        self,
        job: WorkflowJob,
        success: bool,
        duration_ms: int,
        now: datetime,
    ) -> None:
        workflow = await self.workflow_repo.get_for_organization(
            job.organization_id, job.workflow_id, for_update=True
        )
        if workflow is not None:
            workflow.stats = updated_stats(workflow.stats, success, duration_ms, now)

        await self.usage_service.record_outcome(
            job.organization_id, current_period(job.created_at), success
        )

    async def complete(
        self,
        job_id: UUID,
        output: dict[str, Any] | None,
        duration_ms: int | None,
    ) -> WorkflowJob:
        """Mark a job and its execution completed.

        Raises:
            ExecutionNotFoundError: If the job does not exist
            JobStateError: If the job already finished (conflict)
        """
        now = utc_now()
        try:
            job = await self._get_open_job(job_id)
            execution = await self.execution_repo.get_for_update(job.execution_id)
            if duration_ms is None:
                duration_ms = _elapsed_ms(execution, now)

            job.status = JobStatus.COMPLETED.value
            job.completed_at = now
            job.result = output
            job.locked_at = None
            job.locked_by = None

            if execution is not None:
                execution.status = ExecutionStatus.COMPLETED.value
                execution.completed_at = now
                execution.result = {"success": True, "output": output}
                execution.metrics = {
                    **(execution.metrics or {}),
                    "totalDurationMs": duration_ms,
                }

            await self._record_terminal(job, True, duration_ms, now)

            await self.session.commit()
            await self.session.refresh(job)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Job completed",
            job_id=str(job.id),
            execution_id=str(job.execution_id),
            duration_ms=duration_ms,
        )
        return job

    async def fail(self, job_id: UUID, error: str, retryable: bool = True) -> WorkflowJob:
        """Record a failed attempt.

        The job is rescheduled with exponential backoff while it is retryable
        and has attempts left; otherwise it and its execution fail.

        Raises:
            ExecutionNotFoundError: If the job does not exist
            JobStateError: If the job already finished (conflict)
        """
        now = utc_now()
        message = truncate_error(error)
        try:
            job = await self._get_open_job(job_id)
            job.last_error = message
            job.locked_at = None
            job.locked_by = None
            execution = await self.execution_repo.get_for_update(job.execution_id)

            will_retry = retryable and job.attempts < job.max_attempts
            if will_retry:
                job.status = JobStatus.PENDING.value
                job.run_at = now + retry_delay(job.attempts)
                if execution is not None:
                    execution.status = ExecutionStatus.PENDING.value
            else:
                job.status = JobStatus.FAILED.value
                job.completed_at = now
                duration_ms = _elapsed_ms(execution, now)
                if execution is not None:
                    execution.status = ExecutionStatus.FAILED.value
                    execution.completed_at = now
                    execution.result = {
                        "success": False,
                        "error": {"code": EXECUTION_FAILED, "message": message},
                    }
                    execution.metrics = {
                        **(execution.metrics or {}),
                        "totalDurationMs": duration_ms,
                    }
                await self._record_terminal(job, False, duration_ms, now)

            await self.session.commit()
            await self.session.refresh(job)
        except Exception:
            await self.session.rollback()
            raise

        if will_retry:
            logger.warning(
                "Job failed, retry scheduled",
                job_id=str(job.id),
                attempt=job.attempts,
                max_attempts=job.max_attempts,
                run_at=job.run_at.isoformat(),
            )
        else:
            logger.warning(
                "Job failed",
                job_id=str(job.id),
                execution_id=str(job.execution_id),
                attempts=job.attempts,
                retryable=retryable,
            )
        return job

    async def report_node(
        self, execution_id: UUID, report: NodeOutcomeReport
    ) -> WorkflowExecution:
        """Record a node outcome.

        Raises:
            ExecutionNotFoundError: If the execution does not exist
            JobStateError: If the execution is already terminal (conflict)
        """
        try:
            execution = await self.execution_repo.get_for_update(execution_id)
            if execution is None:
                raise ExecutionNotFoundError()
            if execution.is_terminal:
                raise JobStateError(
                    f"Execution is already {execution.status}", conflict=True
                )

            apply_node_outcome(execution, report, utc_now())

            await self.session.commit()
            await self.session.refresh(execution)
        except Exception:
            await self.session.rollback()
            raise

        return execution

    async def append_logs(self, execution_id: UUID, entries: list[LogEntryCreate]) -> int:
        """Append log entries stamped now and expiring after the log retention period.

        Raises:
            ExecutionNotFoundError: If the execution does not exist
        """
        execution = await self.execution_repo.get_by_id(execution_id)
        if execution is None:
            raise ExecutionNotFoundError()

        now = utc_now()
        expires_at = now + timedelta(days=get_settings().log_retention_days)
        try:
            self.log_repo.add_many(
                [
                    ExecutionLog(
                        execution_id=execution_id,
                        node_id=entry.node_id,
                        timestamp=now,
                        level=entry.level.value,
                        event=entry.event,
                        message=entry.message,
                        data=entry.data,
                        expires_at=expires_at,
                    )
                    for entry in entries
                ]
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        return len(entries)

    async def queue_status(self, organization_id: str) -> dict[str, Any]:
        """Job counts per status and the oldest pending job's creation time."""
        return await self.job_repo.status_counts(organization_id)


def _elapsed_ms(execution: WorkflowExecution | None, now: datetime) -> int:
    if execution is None or execution.started_at is None:
        return 0
    return max(0, int((now - execution.started_at).total_seconds() * 1000))
