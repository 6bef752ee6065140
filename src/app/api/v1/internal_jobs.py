"""Job queue endpoints consumed by the external executor.

Authenticated with the shared ``X-Worker-Secret`` header rather than user tokens.
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.app.api.dependencies import QueueServiceDep, WorkerAuth
from src.app.api.errors import DomainError, to_http_exception
from src.app.core.logging import bind_worker_context
from src.app.schemas.job import (
    AppendLogsRequest,
    AppendLogsResponse,
    ClaimJobRequest,
    CompleteJobRequest,
    FailJobRequest,
    JobRead,
    NodeOutcomeReport,
    NodeOutcomeResponse,
)

router = APIRouter(
    prefix="/internal/jobs",
    tags=["internal"],
    dependencies=[WorkerAuth],
    responses={
        401: {"description": "Invalid worker secret"},
        503: {"description": "Worker secret not configured"},
    },
)


@router.post(
    "/claim",
    response_model=JobRead,
    summary="Claim next job",
    responses={
        200: {"description": "Job claimed and locked for this worker"},
        204: {"description": "No runnable job"},
    },
)
async def claim_job(data: ClaimJobRequest, service: QueueServiceDep) -> JobRead | Response:
    """Claim the highest-priority runnable job.

    Pending jobs that are due and processing jobs with a stale lock are
    eligible. Concurrent claims never receive the same job.
    """
    bind_worker_context(data.worker_id)
    job = await service.claim(data.worker_id)
    if job is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JobRead.model_validate(job)


@router.post(
    "/{job_id}/complete",
    response_model=JobRead,
    summary="Complete job",
    responses={
        404: {"description": "Job not found"},
        409: {"description": "Job already finished"},
    },
)
async def complete_job(
    job_id: UUID, data: CompleteJobRequest, service: QueueServiceDep
) -> JobRead:
    """Mark a job and its execution completed and update workflow stats."""
    try:
        job = await service.complete(job_id, data.result, data.duration_ms)
    except DomainError as e:
        raise to_http_exception(e) from e
    return JobRead.model_validate(job)


@router.post(
    "/{job_id}/fail",
    response_model=JobRead,
    summary="Fail job",
    responses={
        404: {"description": "Job not found"},
        409: {"description": "Job already finished"},
    },
)
async def fail_job(job_id: UUID, data: FailJobRequest, service: QueueServiceDep) -> JobRead:
    """Record a failed attempt; the job is retried with backoff while attempts remain."""
    try:
        job = await service.fail(job_id, data.error, data.retryable)
    except DomainError as e:
        raise to_http_exception(e) from e
    return JobRead.model_validate(job)


@router.post(
    "/executions/{execution_id}/nodes",
    response_model=NodeOutcomeResponse,
    summary="Report node outcome",
    responses={
        404: {"description": "Execution not found"},
        409: {"description": "Execution already finished"},
    },
)
async def report_node_outcome(
    execution_id: UUID, data: NodeOutcomeReport, service: QueueServiceDep
) -> NodeOutcomeResponse:
    """Record a node as completed, failed or skipped."""
    try:
        execution = await service.report_node(execution_id, data)
    except DomainError as e:
        raise to_http_exception(e) from e
    return NodeOutcomeResponse(
        execution_id=execution.id,
        current_node_id=execution.current_node_id,
        completed_nodes=execution.completed_nodes,
        failed_nodes=execution.failed_nodes,
        skipped_nodes=execution.skipped_nodes,
    )


@router.post(
    "/executions/{execution_id}/logs",
    response_model=AppendLogsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Append execution logs",
    responses={404: {"description": "Execution not found"}},
)
async def append_execution_logs(
    execution_id: UUID, data: AppendLogsRequest, service: QueueServiceDep
) -> AppendLogsResponse:
    """Append log entries to an execution."""
    try:
        appended = await service.append_logs(execution_id, data.entries)
    except DomainError as e:
        raise to_http_exception(e) from e
    return AppendLogsResponse(appended=appended)
