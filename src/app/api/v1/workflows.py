"""Workflow endpoints - definitions, status transitions, execution and history."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from src.app.api.context import get_request_source
from src.app.api.dependencies import (
    AuditServiceDep,
    CurrentUser,
    ExecutionServiceDep,
    MembershipRepo,
    OrganizationRepo,
    QueryAdminOrganization,
    QueryOrganization,
    WorkflowServiceDep,
    authorize_organization,
)
from src.app.api.errors import DomainError, to_http_exception
from src.app.models import AuditAction, ExecutionStatus, TriggerType, WorkflowStatus
from src.app.schemas.errors import CodedErrorResponse
from src.app.schemas.execution import (
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    ExecutionListItem,
    ExecutionListResponse,
    ExecutionLogRead,
)
from src.app.schemas.pagination import OffsetPagination
from src.app.schemas.workflow import (
    WorkflowCreate,
    WorkflowListResponse,
    WorkflowRead,
    WorkflowStatusResponse,
    WorkflowStatusUpdate,
    WorkflowUpdate,
)
from src.app.services.exceptions import AdmissionRejectedError
from src.app.services.execution_service import QUEUED_MESSAGE, build_trigger

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post(
    "",
    response_model=WorkflowRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create workflow",
    responses={
        201: {"description": "Workflow created as a draft"},
        400: {"description": "Organization ID missing or slug unavailable"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the organization"},
    },
)
async def create_workflow(
    data: WorkflowCreate,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: WorkflowServiceDep,
    audit_service: AuditServiceDep,
) -> WorkflowRead:
    """Create a workflow. The slug is derived from the name."""
    organization = await authorize_organization(
        current_user, data.org_id, membership_repo, organization_repo
    )
    try:
        workflow = await service.create(organization.id, data, current_user.id)
    except DomainError as e:
        raise to_http_exception(e) from e

    await audit_service.log_success(
        organization.id,
        AuditAction.WORKFLOW_CREATE,
        "workflow",
        entity_id=workflow.id,
        user_id=current_user.id,
        changes={"name": workflow.name, "slug": workflow.slug},
    )
    return WorkflowRead.model_validate(workflow)


@router.get(
    "",
    response_model=WorkflowListResponse,
    summary="List workflows",
    responses={
        200: {"description": "Page of workflows, most recently updated first"},
        400: {"description": "Organization ID missing"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the organization"},
    },
)
async def list_workflows(
    organization: QueryOrganization,
    service: WorkflowServiceDep,
    workflow_status: Annotated[WorkflowStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 20,
    offset: Annotated[int, Query(ge=0, description="Items to skip")] = 0,
) -> WorkflowListResponse:
    """List an organization's workflows with exact pagination."""
    workflows, total = await service.list_workflows(
        organization.id, workflow_status, limit=limit, offset=offset
    )
    return WorkflowListResponse(
        workflows=[WorkflowRead.model_validate(w) for w in workflows],
        pagination=OffsetPagination.build(total, limit, offset, len(workflows)),
    )


@router.get(
    "/{workflow_id}",
    response_model=WorkflowRead,
    summary="Get workflow",
    responses={
        200: {"description": "Workflow details"},
        404: {"description": "Workflow not found"},
    },
)
async def get_workflow(
    workflow_id: str,
    organization: QueryOrganization,
    service: WorkflowServiceDep,
) -> WorkflowRead:
    """Get a workflow owned by the organization."""
    try:
        workflow = await service.get(organization.id, workflow_id)
    except DomainError as e:
        raise to_http_exception(e) from e
    return WorkflowRead.model_validate(workflow)


@router.patch(
    "/{workflow_id}",
    response_model=WorkflowRead,
    summary="Update workflow",
    description="Partial update. Changing the canvas or settings increments the version.",
    responses={
        200: {"description": "Workflow updated"},
        404: {"description": "Workflow not found"},
    },
)
async def update_workflow(
    workflow_id: str,
    data: WorkflowUpdate,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: WorkflowServiceDep,
    audit_service: AuditServiceDep,
) -> WorkflowRead:
    """Update a workflow's definition."""
    organization = await authorize_organization(
        current_user, data.org_id, membership_repo, organization_repo
    )
    try:
        workflow, changes = await service.update(
            organization.id, workflow_id, data, current_user.id
        )
    except DomainError as e:
        raise to_http_exception(e) from e

    if changes:
        await audit_service.log_success(
            organization.id,
            AuditAction.WORKFLOW_UPDATE,
            "workflow",
            entity_id=workflow.id,
            user_id=current_user.id,
            changes=changes,
        )
    return WorkflowRead.model_validate(workflow)


@router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete workflow",
    responses={
        204: {"description": "Workflow deleted"},
        400: {"description": "Workflow is active"},
        403: {"description": "Admin role required"},
        404: {"description": "Workflow not found"},
    },
)
async def delete_workflow(
    workflow_id: str,
    organization: QueryAdminOrganization,
    current_user: CurrentUser,
    service: WorkflowServiceDep,
    audit_service: AuditServiceDep,
) -> None:
    """Delete a workflow that is not active. Admin only."""
    try:
        workflow = await service.delete(organization.id, workflow_id)
    except DomainError as e:
        raise to_http_exception(e) from e

    await audit_service.log_success(
        organization.id,
        AuditAction.WORKFLOW_DELETE,
        "workflow",
        entity_id=workflow_id,
        user_id=current_user.id,
        changes={"name": workflow.name},
    )


@router.patch(
    "/{workflow_id}/status",
    response_model=WorkflowStatusResponse,
    summary="Change workflow status",
    responses={
        200: {"description": "Status changed"},
        400: {"description": "Invalid status or activation rule failed"},
        401: {"description": "Not authenticated"},
        403: {"description": "Admin role required"},
        404: {"description": "Workflow not found"},
        429: {"model": CodedErrorResponse, "description": "Active workflow limit reached"},
    },
)
async def update_workflow_status(
    workflow_id: str,
    data: WorkflowStatusUpdate,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: WorkflowServiceDep,
    audit_service: AuditServiceDep,
) -> WorkflowStatusResponse:
    """Move a workflow between draft, active, paused and archived.

    Activation requires at least one node and one trigger node, and is
    refused for archived workflows.
    """
    organization = await authorize_organization(
        current_user, data.org_id, membership_repo, organization_repo, require_admin=True
    )
    try:
        workflow, previous = await service.change_status(
            organization, workflow_id, data.status, current_user.id
        )
    except DomainError as e:
        raise to_http_exception(e) from e

    await audit_service.log_success(
        organization.id,
        AuditAction.WORKFLOW_STATUS_CHANGE,
        "workflow",
        entity_id=workflow.id,
        user_id=current_user.id,
        changes={"status": {"old": previous, "new": workflow.status}},
    )
    return WorkflowStatusResponse(workflow=WorkflowRead.model_validate(workflow))


@router.post(
    "/{workflow_id}/execute",
    response_model=ExecuteWorkflowResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Execute workflow",
    responses={
        202: {"description": "Execution queued"},
        400: {"description": "Organization ID missing or workflow not executable"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the organization"},
        404: {"description": "Workflow not found"},
        429: {"model": CodedErrorResponse, "description": "QUEUE_FULL or LIMIT_EXCEEDED"},
    },
)
async def execute_workflow(
    workflow_id: str,
    data: ExecuteWorkflowRequest,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    workflow_service: WorkflowServiceDep,
    execution_service: ExecutionServiceDep,
    audit_service: AuditServiceDep,
) -> ExecuteWorkflowResponse:
    """Queue a manual execution.

    Queue depth, usage metering, the execution record and the job are
    written atomically; a rejection leaves nothing behind.
    """
    organization = await authorize_organization(
        current_user, data.org_id, membership_repo, organization_repo
    )
    # Admission rolls back on rejection, which expires the loaded user and organization
    organization_id = organization.id
    user_id = current_user.id
    ip, user_agent = get_request_source()
    trigger = build_trigger(TriggerType.MANUAL, data.payload, ip, user_agent, user_id)

    try:
        workflow = await workflow_service.get(organization_id, workflow_id)
        execution = await execution_service.admit(organization, workflow, trigger)
    except AdmissionRejectedError as e:
        await audit_service.log_failure(
            organization_id,
            AuditAction.WORKFLOW_EXECUTE,
            "workflow",
            f"{e.code}: {e.message}",
            entity_id=workflow_id,
            user_id=user_id,
        )
        raise to_http_exception(e) from e
    except DomainError as e:
        raise to_http_exception(e) from e

    await audit_service.log_success(
        organization_id,
        AuditAction.WORKFLOW_EXECUTE,
        "workflow",
        entity_id=workflow.id,
        user_id=user_id,
        changes={"executionId": str(execution.id), "version": execution.workflow_version},
    )
    return ExecuteWorkflowResponse(
        execution_id=execution.id,
        status=execution.status,
        message=QUEUED_MESSAGE,
    )


@router.get(
    "/{workflow_id}/executions",
    response_model=ExecutionListResponse,
    summary="List workflow executions",
    responses={
        200: {"description": "Page of executions, newest first"},
        404: {"description": "Workflow not found"},
    },
)
async def list_workflow_executions(
    workflow_id: str,
    organization: QueryOrganization,
    workflow_service: WorkflowServiceDep,
    execution_service: ExecutionServiceDep,
    execution_status: Annotated[ExecutionStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 20,
    offset: Annotated[int, Query(ge=0, description="Items to skip")] = 0,
    logs: Annotated[bool, Query(description="Include recent log entries")] = False,
) -> ExecutionListResponse:
    """List a workflow's executions with exact pagination."""
    try:
        workflow = await workflow_service.get(organization.id, workflow_id)
    except DomainError as e:
        raise to_http_exception(e) from e

    executions, total, logs_by_execution = await execution_service.list_for_workflow(
        workflow.id, execution_status, limit=limit, offset=offset, include_logs=logs
    )

    items = []
    for execution in executions:
        item = ExecutionListItem.model_validate(execution)
        if logs:
            item.logs = [
                ExecutionLogRead.model_validate(entry)
                for entry in logs_by_execution.get(execution.id, [])
            ]
        items.append(item)

    return ExecutionListResponse(
        executions=items,
        pagination=OffsetPagination.build(total, limit, offset, len(executions)),
    )
