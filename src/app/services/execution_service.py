"""Execution admission, status reporting and manual job control."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.config import get_settings
from src.app.core.db import get_session
from src.app.core.logging import get_logger
from src.app.models import (
    ExecutionLog,
    ExecutionStatus,
    JobStatus,
    Organization,
    TriggerType,
    Workflow,
    WorkflowExecution,
    WorkflowJob,
)
from src.app.models.base import utc_now
from src.app.models.execution import default_context, default_metrics
from src.app.models.workflow import EXECUTABLE_STATUSES
from src.app.repositories import (
    ExecutionLogRepository,
    ExecutionRepository,
    JobRepository,
)
from src.app.services.exceptions import (
    AdmissionRejectedError,
    ExecutionNotFoundError,
    JobStateError,
    WorkflowValidationError,
)
from src.app.services.usage_service import UsageService

logger = get_logger(__name__)

QUEUE_FULL = "QUEUE_FULL"
QUEUE_FULL_MESSAGE = "Too many pending executions. Please wait for some to complete."
QUEUED_MESSAGE = "Workflow execution queued"
CANCELLED = "CANCELLED"
CANCELLED_MESSAGE = "Cancelled by user"

DEFAULT_JOB_PRIORITY = 1
MAX_ERROR_LENGTH = 4000

RETRYABLE_JOB_STATUSES = frozenset(
    {JobStatus.FAILED.value, JobStatus.PENDING.value, JobStatus.PROCESSING.value}
)
CANCELLABLE_JOB_STATUSES = frozenset({JobStatus.PENDING.value, JobStatus.PROCESSING.value})


def build_trigger(
    trigger_type: TriggerType,
    payload: dict[str, Any],
    ip: str,
    user_agent: str | None,
    user_id: UUID | None = None,
) -> dict[str, Any]:
    """Build the immutable trigger document stored on execution and job."""
    source: dict[str, Any] = {"ip": ip, "userAgent": user_agent}
    if user_id is not None:
        source = {"userId": str(user_id), **source}
    return {"type": trigger_type.value, "payload": payload, "source": source}


def truncate_error(message: str) -> str:
    return message[:MAX_ERROR_LENGTH]


@dataclass(frozen=True)
class Progress:
    """Counts of observed node outcomes."""

    completed: int
    failed: int
    skipped: int

    @property
    def total(self) -> int:
        return self.completed + self.failed + self.skipped

    @classmethod
    def of(cls, execution: WorkflowExecution) -> "Progress":
        return cls(
            completed=len(execution.completed_nodes or []),
            failed=len(execution.failed_nodes or []),
            skipped=len(execution.skipped_nodes or []),
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "total": self.total,
        }


def describe_job(job: WorkflowJob, now: datetime | None = None) -> dict[str, Any]:
    """Queue entry fields plus derived retry/cancel/wait/staleness flags."""
    now = now or utc_now()
    stale_before = now - timedelta(seconds=get_settings().job_lock_timeout_seconds)
    wait_time_ms = None
    if job.status == JobStatus.PENDING.value:
        wait_time_ms = int((now - job.created_at).total_seconds() * 1000)

    return {
        "id": job.id,
        "status": job.status,
        "attempts": job.attempts,
        "max_attempts": job.max_attempts,
        "last_error": job.last_error,
        "run_at": job.run_at,
        "locked_at": job.locked_at,
        "locked_by": job.locked_by,
        "created_at": job.created_at,
        "completed_at": job.completed_at,
        "can_retry": job.status in RETRYABLE_JOB_STATUSES,
        "can_cancel": job.status in CANCELLABLE_JOB_STATUSES,
        "wait_time_ms": wait_time_ms,
        "is_stale": (
            job.status == JobStatus.PROCESSING.value
            and job.locked_at is not None
            and job.locked_at < stale_before
        ),
    }


@dataclass
class ExecutionDetail:
    execution: WorkflowExecution
    progress: Progress
    logs: list[ExecutionLog] | None
    job: WorkflowJob | None


class ExecutionService:
    """Execution lifecycle service - business logic only."""

    def __init__(
        self,
        execution_repo: ExecutionRepository,
        job_repo: JobRepository,
        log_repo: ExecutionLogRepository,
        usage_service: UsageService,
        session: AsyncSession,
    ):
        self.execution_repo = execution_repo
        self.job_repo = job_repo
        self.log_repo = log_repo
        self.usage_service = usage_service
        self.session = session

    async def admit(
        self,
        organization: Organization,
        workflow: Workflow,
        trigger: dict[str, Any],
    ) -> WorkflowExecution:
        """Admit one execution: depth check, usage increment, execution and job.

        Everything runs in one transaction under a per-organization advisory
        lock. A rejection or failure at any step rolls back every write, so
        usage is never counted for an execution that was not queued.

        Raises:
            WorkflowValidationError: If the workflow status is not executable
            AdmissionRejectedError: QUEUE_FULL or LIMIT_EXCEEDED
        """
        if workflow.status not in EXECUTABLE_STATUSES:
            raise WorkflowValidationError(
                f"Cannot execute workflow with status '{workflow.status}'"
            )

        # A rollback expires every loaded instance, so keys are read up front
        organization_id = organization.id
        workflow_id = workflow.id
        settings = get_settings()
        try:
            await self.job_repo.lock_organization_queue(organization_id)

            outstanding = await self.job_repo.count_outstanding(organization_id)
            if outstanding >= settings.queue_max_pending:
                raise AdmissionRejectedError(QUEUE_FULL_MESSAGE, code=QUEUE_FULL)

            await self.usage_service.consume_execution(organization, workflow_id)

            now = utc_now()
            execution = WorkflowExecution(
                workflow_id=workflow.id,
                workflow_version=workflow.version,
                organization_id=organization.id,
                trigger=trigger,
                status=ExecutionStatus.PENDING.value,
                started_at=now,
                completed_nodes=[],
                failed_nodes=[],
                skipped_nodes=[],
                context=default_context(),
                metrics=default_metrics(),
            )
            self.execution_repo.add(execution)
            await self.session.flush()

            job = WorkflowJob(
                workflow_id=workflow.id,
                execution_id=execution.id,
                organization_id=organization.id,
                status=JobStatus.PENDING.value,
                priority=DEFAULT_JOB_PRIORITY,
                trigger=trigger,
                run_at=now,
                attempts=0,
                max_attempts=workflow.max_attempts,
                created_at=now,
                expires_at=now + timedelta(days=settings.job_retention_days),
            )
            self.job_repo.add(job)

            await self.session.commit()
        except AdmissionRejectedError as e:
            await self.session.rollback()
            logger.warning(
                "Execution rejected",
                workflow_id=workflow_id,
                organization_id=organization_id,
                code=e.code,
            )
            raise
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Execution queued",
            execution_id=str(execution.id),
            workflow_id=workflow_id,
            organization_id=organization_id,
            trigger_type=trigger.get("type"),
        )
        return execution

    async def get_execution(self, execution_id: UUID) -> WorkflowExecution:
        """Raises ExecutionNotFoundError when the id is unknown."""
        execution = await self.execution_repo.get_by_id(execution_id)
        if execution is None:
            raise ExecutionNotFoundError()
        return execution

    async def get_detail(
        self,
        execution: WorkflowExecution,
        include_logs: bool,
        log_level: str | None = None,
    ) -> ExecutionDetail:
        """Read progress, optional logs and the queue entry. Performs no writes."""
        logs = None
        if include_logs:
            logs = await self.log_repo.list_for_execution(
                execution.id,
                limit=get_settings().execution_log_limit,
                level=log_level,
            )
        job = await self.job_repo.get_by_execution_id(execution.id)
        return ExecutionDetail(
            execution=execution,
            progress=Progress.of(execution),
            logs=logs,
            job=job,
        )

    async def list_for_workflow(
        self,
        workflow_id: str,
        status: ExecutionStatus | None,
        limit: int,
        offset: int,
        include_logs: bool,
    ) -> tuple[list[WorkflowExecution], int, dict[UUID, list[ExecutionLog]]]:
        """List a workflow's executions, newest first.

        Returns:
            Tuple of (executions, total, logs keyed by execution id). Logs are
            only fetched when ``include_logs`` is set, one concurrent task per
            execution, each on its own session.
        """
        executions, total = await self.execution_repo.list_for_workflow(
            workflow_id,
            status.value if status else None,
            limit=limit,
            offset=offset,
        )

        logs: dict[UUID, list[ExecutionLog]] = {}
        if include_logs and executions:
            log_limit = get_settings().listing_log_limit
            results = await asyncio.gather(
                *(fetch_execution_logs(execution.id, log_limit) for execution in executions)
            )
            logs = {
                execution.id: entries
                for execution, entries in zip(executions, results, strict=True)
            }

        return executions, total, logs

    async def retry(self, execution_id: UUID) -> WorkflowJob:
        """Put an execution's job back in the queue.

        Raises:
            ExecutionNotFoundError: If the execution has no job
            JobStateError: If the job is completed
        """
        try:
            job = await self.job_repo.get_by_execution_id(execution_id, for_update=True)
            if job is None:
                raise ExecutionNotFoundError("Job not found for this execution")
            if job.status not in RETRYABLE_JOB_STATUSES:
                raise JobStateError("Job cannot be retried in its current state")

            now = utc_now()
            job.status = JobStatus.PENDING.value
            job.run_at = now
            job.attempts = 0
            job.locked_at = None
            job.locked_by = None
            job.completed_at = None
            job.last_error = truncate_error(
                f"Manually retried. Previous error: {job.last_error or 'none'}"
            )

            execution = await self.execution_repo.get_for_update(execution_id)
            if execution is not None:
                execution.status = ExecutionStatus.PENDING.value
                execution.completed_at = None
                execution.result = None

            await self.session.commit()
            await self.session.refresh(job)
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Job manually retried", execution_id=str(execution_id), job_id=str(job.id))
        return job

    async def cancel(self, execution_id: UUID) -> WorkflowJob:
        """Cancel an execution that has not finished.

        Raises:
            ExecutionNotFoundError: If the execution has no job
            JobStateError: If the job already finished
        """
        try:
            job = await self.job_repo.get_by_execution_id(execution_id, for_update=True)
            if job is None:
                raise ExecutionNotFoundError("Job not found for this execution")
            if job.status not in CANCELLABLE_JOB_STATUSES:
                raise JobStateError("Job cannot be cancelled in its current state")

            now = utc_now()
            job.status = JobStatus.FAILED.value
            job.last_error = CANCELLED_MESSAGE
            job.completed_at = now
            job.locked_at = None
            job.locked_by = None

            execution = await self.execution_repo.get_for_update(execution_id)
            if execution is not None:
                execution.status = ExecutionStatus.CANCELLED.value
                execution.completed_at = now
                execution.result = {
                    "success": False,
                    "error": {"code": CANCELLED, "message": CANCELLED_MESSAGE},
                }

            await self.session.commit()
            await self.session.refresh(job)
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Execution cancelled", execution_id=str(execution_id), job_id=str(job.id))
        return job


async def fetch_execution_logs(execution_id: UUID, limit: int) -> list[ExecutionLog]:
    """Read one execution's logs on a dedicated session.

    AsyncSession does not support concurrent use, so listing fans out with
    one session per task.
    """
    async with get_session() as session:
        return await ExecutionLogRepository(session).list_for_execution(execution_id, limit)
