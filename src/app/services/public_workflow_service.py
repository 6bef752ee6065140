"""Unauthenticated workflow views and public API execution."""

from typing import Any
from uuid import UUID

from fastapi.encoders import jsonable_encoder

from src.app.core.cache import cache_public_workflow, get_cached_public_workflow
from src.app.core.config import get_settings
from src.app.core.logging import get_logger
from src.app.core.security import verify_token_hash
from src.app.models import (
    ExecutionLog,
    TriggerType,
    Workflow,
    WorkflowExecution,
    WorkflowStatus,
)
from src.app.models.workflow import EXECUTABLE_STATUSES
from src.app.repositories import (
    ExecutionLogRepository,
    ExecutionRepository,
    OrganizationRepository,
    WorkflowRepository,
)
from src.app.services.exceptions import (
    ExecutionNotFoundError,
    InvalidExecutionTokenError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)
from src.app.services.execution_service import ExecutionService, build_trigger

logger = get_logger(__name__)

WORKFLOW_NOT_FOUND = "WORKFLOW_NOT_FOUND"
WORKFLOW_NOT_ACTIVE = "WORKFLOW_NOT_ACTIVE"
EXECUTION_NOT_FOUND = "EXECUTION_NOT_FOUND"

PUBLIC_VIEW_NOT_FOUND_MESSAGE = "Workflow not found or not available for public viewing"
PUBLIC_EXECUTE_NOT_FOUND_MESSAGE = "Workflow not found or public execution not enabled"
WORKFLOW_NOT_ACTIVE_MESSAGE = "Workflow is not active"


def public_projection(workflow: Workflow, include_metadata: bool) -> dict[str, Any]:
    """Fields safe to expose without authentication.

    Settings, organization and authorship never appear.
    """
    projection: dict[str, Any] = {
        "id": workflow.id,
        "name": workflow.name,
        "description": workflow.description,
        "slug": workflow.slug,
        "canvas": workflow.canvas,
        "status": workflow.status,
        "version": workflow.version,
        "tags": workflow.tags,
        "created_at": workflow.created_at,
        "updated_at": workflow.updated_at,
    }
    if include_metadata:
        projection.update(
            stats=workflow.stats,
            variables=workflow.variables,
            input_schema=workflow.input_schema,
            output_schema=workflow.output_schema,
        )
    return projection


class PublicWorkflowService:
    """Public workflow access - business logic only."""

    def __init__(
        self,
        workflow_repo: WorkflowRepository,
        organization_repo: OrganizationRepository,
        execution_repo: ExecutionRepository,
        log_repo: ExecutionLogRepository,
        execution_service: ExecutionService,
    ):
        self.workflow_repo = workflow_repo
        self.organization_repo = organization_repo
        self.execution_repo = execution_repo
        self.log_repo = log_repo
        self.execution_service = execution_service

    async def get_public_view(self, slug: str, include_metadata: bool) -> dict[str, Any]:
        """Return the public projection of a viewable workflow.

        Serves from the Redis cache when present. Every miss is answered with
        the same not-found error so callers cannot probe for private slugs.

        Raises:
            WorkflowNotFoundError: WORKFLOW_NOT_FOUND
        """
        cached = await get_cached_public_workflow(slug, include_metadata)
        if cached is not None:
            return cached

        workflow = await self.workflow_repo.get_by_slug(slug, statuses=EXECUTABLE_STATUSES)
        if workflow is None or workflow.embed_settings.get("allowPublicViewing") is not True:
            raise WorkflowNotFoundError(PUBLIC_VIEW_NOT_FOUND_MESSAGE, code=WORKFLOW_NOT_FOUND)

        projection = jsonable_encoder(public_projection(workflow, include_metadata))
        await cache_public_workflow(slug, include_metadata, projection)
        return projection

    async def execute(
        self,
        slug: str,
        token: str | None,
        payload: dict[str, Any],
        ip: str,
        user_agent: str | None,
    ) -> WorkflowExecution:
        """Queue an execution through a workflow's public execution link.

        Raises:
            WorkflowNotFoundError: WORKFLOW_NOT_FOUND when public execution is off
            InvalidExecutionTokenError: When a token is configured and does not match
            WorkflowValidationError: WORKFLOW_NOT_ACTIVE
            AdmissionRejectedError: QUEUE_FULL or LIMIT_EXCEEDED
        """
        workflow = await self.workflow_repo.get_by_slug(slug)
        embed = workflow.embed_settings if workflow is not None else {}
        if workflow is None or not embed.get("allowPublicExecution"):
            raise WorkflowNotFoundError(PUBLIC_EXECUTE_NOT_FOUND_MESSAGE, code=WORKFLOW_NOT_FOUND)

        token_hash = embed.get("executionTokenHash")
        if token_hash and not verify_token_hash(token, token_hash):
            logger.warning("Public execution token rejected", workflow_id=workflow.id)
            raise InvalidExecutionTokenError()

        if workflow.status != WorkflowStatus.ACTIVE.value:
            raise WorkflowValidationError(WORKFLOW_NOT_ACTIVE_MESSAGE, code=WORKFLOW_NOT_ACTIVE)

        organization = await self.organization_repo.get_active(workflow.organization_id)
        if organization is None:
            raise WorkflowNotFoundError(PUBLIC_EXECUTE_NOT_FOUND_MESSAGE, code=WORKFLOW_NOT_FOUND)

        trigger = build_trigger(TriggerType.API, payload, ip, user_agent)
        return await self.execution_service.admit(organization, workflow, trigger)

    async def get_public_execution(
        self, execution_id: UUID, include_logs: bool
    ) -> tuple[WorkflowExecution, list[ExecutionLog] | None]:
        """Status of an execution started through the public API.

        Raises:
            ExecutionNotFoundError: EXECUTION_NOT_FOUND for unknown ids and for
                executions started any other way
        """
        execution = await self.execution_repo.get_by_id(execution_id)
        if execution is None or (execution.trigger or {}).get("type") != TriggerType.API.value:
            raise ExecutionNotFoundError(code=EXECUTION_NOT_FOUND)

        logs = None
        if include_logs:
            logs = await self.log_repo.list_for_execution(
                execution.id, limit=get_settings().listing_log_limit
            )
        return execution, logs
