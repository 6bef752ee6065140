"""Public workflow endpoints - no authentication, rate-limited per client IP."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status

from src.app.api.context import get_request_source
from src.app.api.dependencies import PublicWorkflowServiceDep
from src.app.api.errors import DomainError, error_detail, to_http_exception
from src.app.core.config import get_settings
from src.app.core.rate_limit import limiter
from src.app.schemas.errors import CodedErrorResponse
from src.app.schemas.execution import ExecuteWorkflowResponse, ExecutionLogRead, ProgressRead
from src.app.schemas.public import (
    PublicExecuteRequest,
    PublicExecutionRead,
    PublicExecutionResponse,
    PublicWorkflowRead,
    PublicWorkflowResponse,
)
from src.app.services.execution_service import QUEUED_MESSAGE, Progress
from src.app.services.public_workflow_service import EXECUTION_NOT_FOUND

router = APIRouter(prefix="/workflows/public", tags=["public"])


def _public_rate_limit() -> str:
    return get_settings().public_rate_limit


@router.get(
    "/executions/{execution_id}",
    response_model=PublicExecutionResponse,
    summary="Get public execution status",
    responses={
        200: {"description": "Sanitized execution status"},
        404: {"model": CodedErrorResponse, "description": "EXECUTION_NOT_FOUND"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(_public_rate_limit)
async def get_public_execution(
    request: Request,
    execution_id: str,
    service: PublicWorkflowServiceDep,
    logs: Annotated[bool, Query(description="Include log entries")] = False,
) -> PublicExecutionResponse:
    """Status of an execution started through a public execution link."""
    try:
        execution_uuid = UUID(execution_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_detail("Execution not found", EXECUTION_NOT_FOUND),
        ) from e

    try:
        execution, entries = await service.get_public_execution(execution_uuid, logs)
    except DomainError as e:
        raise to_http_exception(e) from e

    return PublicExecutionResponse(
        execution=PublicExecutionRead(
            id=execution.id,
            workflow_id=execution.workflow_id,
            status=execution.status,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
            current_node_id=execution.current_node_id,
            progress=ProgressRead(**Progress.of(execution).as_dict()),
            result=execution.result,
            duration_ms=(execution.metrics or {}).get("totalDurationMs"),
            logs=(
                [ExecutionLogRead.model_validate(entry) for entry in entries]
                if entries is not None
                else None
            ),
        )
    )


@router.get(
    "/{slug}",
    response_model=PublicWorkflowResponse,
    response_model_exclude_unset=True,
    summary="Get public workflow",
    responses={
        200: {"description": "Public projection of the workflow"},
        404: {"model": CodedErrorResponse, "description": "WORKFLOW_NOT_FOUND"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(_public_rate_limit)
async def get_public_workflow(
    request: Request,
    slug: str,
    service: PublicWorkflowServiceDep,
    metadata: Annotated[bool, Query(description="Include stats, variables and schemas")] = False,
) -> PublicWorkflowResponse:
    """Read a workflow that allows public viewing.

    Settings, organization and authorship are never included.
    """
    try:
        projection = await service.get_public_view(slug, include_metadata=metadata)
    except DomainError as e:
        raise to_http_exception(e) from e
    return PublicWorkflowResponse(workflow=PublicWorkflowRead.model_validate(projection))


@router.post(
    "/{slug}/execute",
    response_model=ExecuteWorkflowResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Execute public workflow",
    responses={
        202: {"description": "Execution queued"},
        400: {"model": CodedErrorResponse, "description": "WORKFLOW_NOT_ACTIVE"},
        401: {"model": CodedErrorResponse, "description": "INVALID_TOKEN"},
        404: {"model": CodedErrorResponse, "description": "WORKFLOW_NOT_FOUND"},
        429: {"model": CodedErrorResponse, "description": "QUEUE_FULL or LIMIT_EXCEEDED"},
    },
)
@limiter.limit(_public_rate_limit)
async def execute_public_workflow(
    request: Request,
    slug: str,
    data: PublicExecuteRequest,
    service: PublicWorkflowServiceDep,
) -> ExecuteWorkflowResponse:
    """Queue an execution through a workflow's public execution link."""
    ip, user_agent = get_request_source()
    try:
        execution = await service.execute(slug, data.token, data.payload, ip, user_agent)
    except DomainError as e:
        raise to_http_exception(e) from e

    return ExecuteWorkflowResponse(
        execution_id=execution.id,
        status=execution.status,
        message=QUEUED_MESSAGE,
    )
