"""Execution endpoints - status, progress and manual job control."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.app.api.dependencies import (
    AuditServiceDep,
    CurrentUser,
    ExecutionServiceDep,
    MembershipRepo,
    OrganizationRepo,
    authorize_organization,
)
from src.app.api.errors import DomainError, to_http_exception
from src.app.models import AuditAction, LogLevel, WorkflowExecution
from src.app.schemas.execution import (
    ExecutionActionRequest,
    ExecutionActionResponse,
    ExecutionDetailResponse,
    ExecutionLogRead,
    ExecutionRead,
    JobDetails,
    ProgressRead,
)
from src.app.services.execution_service import ExecutionService, describe_job

router = APIRouter(prefix="/executions", tags=["executions"])

INVALID_ACTION_MESSAGE = "Invalid action. Must be 'retry' or 'cancel'"


async def _load_authorized_execution(
    execution_id: str,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: ExecutionService,
) -> WorkflowExecution:
    """Resolve an execution id the caller may see.

    Malformed ids are reported as not found, like unknown ones.
    """
    try:
        execution_uuid = UUID(execution_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Execution not found",
        ) from e

    try:
        execution = await service.get_execution(execution_uuid)
    except DomainError as e:
        raise to_http_exception(e) from e

    await authorize_organization(
        current_user, execution.organization_id, membership_repo, organization_repo
    )
    return execution


@router.get(
    "/{execution_id}",
    response_model=ExecutionDetailResponse,
    summary="Get execution status",
    responses={
        200: {"description": "Execution with progress, optional logs and queue entry"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the execution's organization"},
        404: {"description": "Execution not found"},
    },
)
async def get_execution(
    execution_id: str,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: ExecutionServiceDep,
    logs: Annotated[bool, Query(description="Include log entries")] = False,
    log_level: Annotated[LogLevel | None, Query(alias="logLevel")] = None,
) -> ExecutionDetailResponse:
    """Read an execution's status and progress.

    ``progress.total`` is the number of nodes with a reported outcome, not
    the workflow's node count.
    """
    execution = await _load_authorized_execution(
        execution_id, current_user, membership_repo, organization_repo, service
    )
    detail = await service.get_detail(
        execution,
        include_logs=logs,
        log_level=log_level.value if log_level else None,
    )

    return ExecutionDetailResponse(
        execution=ExecutionRead.model_validate(detail.execution),
        progress=ProgressRead(**detail.progress.as_dict()),
        logs=(
            [ExecutionLogRead.model_validate(entry) for entry in detail.logs]
            if detail.logs is not None
            else None
        ),
        job=JobDetails(**describe_job(detail.job)) if detail.job else None,
    )


@router.post(
    "/{execution_id}",
    response_model=ExecutionActionResponse,
    summary="Retry or cancel an execution",
    responses={
        200: {"description": "Action applied"},
        400: {"description": "Invalid action or job state"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the execution's organization"},
        404: {"description": "Execution or job not found"},
    },
)
async def execution_action(
    execution_id: str,
    data: ExecutionActionRequest,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: ExecutionServiceDep,
    audit_service: AuditServiceDep,
) -> ExecutionActionResponse:
    """Manually retry or cancel an execution's queue entry."""
    if data.action not in ("retry", "cancel"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_ACTION_MESSAGE,
        )

    execution = await _load_authorized_execution(
        execution_id, current_user, membership_repo, organization_repo, service
    )

    try:
        if data.action == "retry":
            job = await service.retry(execution.id)
            action = AuditAction.EXECUTION_RETRY
            message = "Job queued for retry"
        else:
            job = await service.cancel(execution.id)
            action = AuditAction.EXECUTION_CANCEL
            message = "Execution cancelled"
    except DomainError as e:
        raise to_http_exception(e) from e

    await audit_service.log_success(
        execution.organization_id,
        action,
        "execution",
        entity_id=execution.id,
        user_id=current_user.id,
    )
    return ExecutionActionResponse(
        success=True,
        message=message,
        job=JobDetails(**describe_job(job)),
    )
