"""Workflow definition service - CRUD, versioning and status transitions."""

from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.cache import invalidate_public_workflow
from src.app.core.logging import get_logger
from src.app.core.slugs import generate_slug, with_suffix
from src.app.models import Organization, Workflow, WorkflowStatus
from src.app.models.base import utc_now
from src.app.models.workflow import default_canvas, default_settings
from src.app.repositories import OrganizationRepository, WorkflowRepository
from src.app.schemas.workflow import WorkflowCreate, WorkflowUpdate
from src.app.services.exceptions import WorkflowNotFoundError, WorkflowValidationError
from src.app.services.status_validator import parse_status, validate_transition
from src.app.services.usage_service import UsageService

logger = get_logger(__name__)

MAX_SLUG_ATTEMPTS = 100

# Fields whose change produces a new workflow version
VERSIONED_FIELDS = frozenset({"canvas", "settings"})

ACTIVE_DELETE_MESSAGE = "Cannot delete an active workflow. Pause or archive it first."


class WorkflowService:
    """Workflow definition service - business logic only."""

    def __init__(
        self,
        workflow_repo: WorkflowRepository,
        organization_repo: OrganizationRepository,
        usage_service: UsageService,
        session: AsyncSession,
    ):
        self.workflow_repo = workflow_repo
        self.organization_repo = organization_repo
        self.usage_service = usage_service
        self.session = session

    async def get(self, organization_id: str, workflow_id: str) -> Workflow:
        """Get a workflow owned by the organization.

        Raises:
            WorkflowNotFoundError: If it does not exist in the organization
        """
        workflow = await self.workflow_repo.get_for_organization(organization_id, workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError()
        return workflow

    async def list_workflows(
        self,
        organization_id: str,
        status: WorkflowStatus | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Workflow], int]:
        """List workflows with an exact total."""
        return await self.workflow_repo.list_for_organization(
            organization_id,
            status.value if status else None,
            limit=limit,
            offset=offset,
        )

    async def _unique_slug(self, name: str) -> str:
        base = generate_slug(name)
        slug = base
        counter = 1
        while await self.workflow_repo.slug_exists(slug):
            if counter >= MAX_SLUG_ATTEMPTS:
                raise WorkflowValidationError("Could not generate a unique slug for this name")
            slug = with_suffix(base, counter)
            counter += 1
        return slug

    async def create(
        self, organization_id: str, data: WorkflowCreate, user_id: UUID
    ) -> Workflow:
        """Create a draft workflow with a slug derived from its name.

        Raises:
            WorkflowValidationError: If no unique slug could be allocated
        """
        slug = await self._unique_slug(data.name)
        now = utc_now()
        workflow = Workflow(
            organization_id=organization_id,
            name=data.name,
            description=data.description,
            slug=slug,
            canvas=data.canvas.model_dump() if data.canvas is not None else default_canvas(),
            settings={**default_settings(), **(data.settings or {})},
            variables=list(data.variables),
            tags=list(data.tags),
            input_schema=data.input_schema,
            output_schema=data.output_schema,
            status=WorkflowStatus.DRAFT.value,
            version=1,
            created_by=user_id,
            last_modified_by=user_id,
            created_at=now,
            updated_at=now,
        )

        try:
            self.workflow_repo.add(workflow)
            await self.session.commit()
            await self.session.refresh(workflow)
        except IntegrityError as e:
            # Slug taken concurrently between the check and the insert
            await self.session.rollback()
            raise WorkflowValidationError(
                f"Workflow with slug '{slug}' already exists"
            ) from e

        logger.info(
            "Workflow created",
            workflow_id=workflow.id,
            organization_id=organization_id,
            slug=slug,
        )
        return workflow

    async def update(
        self,
        organization_id: str,
        workflow_id: str,
        data: WorkflowUpdate,
        user_id: UUID,
    ) -> tuple[Workflow, dict[str, Any]]:
        """Apply a partial update.

        Returns:
            Tuple of (workflow, changed field names mapped to ``{old, new}``
            for scalar fields or ``True`` for documents)
        """
        workflow = await self.get(organization_id, workflow_id)
        updates = data.model_dump(exclude_unset=True, exclude={"org_id"})

        changes: dict[str, Any] = {}
        for field, value in updates.items():
            if field == "name" and value is None:
                continue
            current = getattr(workflow, field)
            if current == value:
                continue
            if field in {"name", "description"}:
                changes[field] = {"old": current, "new": value}
            else:
                changes[field] = True
            setattr(workflow, field, value)

        if VERSIONED_FIELDS & changes.keys():
            workflow.version += 1

        workflow.last_modified_by = user_id
        workflow.updated_at = utc_now()

        try:
            await self.session.commit()
            await self.session.refresh(workflow)
        except Exception:
            await self.session.rollback()
            raise

        await invalidate_public_workflow(workflow.slug)
        return workflow, changes

    async def delete(self, organization_id: str, workflow_id: str) -> Workflow:
        """Delete a workflow that is not active.

        Raises:
            WorkflowNotFoundError: If it does not exist in the organization
            WorkflowValidationError: If the workflow is active
        """
        workflow = await self.get(organization_id, workflow_id)
        if workflow.status == WorkflowStatus.ACTIVE.value:
            raise WorkflowValidationError(ACTIVE_DELETE_MESSAGE)

        try:
            await self.workflow_repo.delete(workflow)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await invalidate_public_workflow(workflow.slug)
        logger.info("Workflow deleted", workflow_id=workflow_id, organization_id=organization_id)
        return workflow

    async def change_status(
        self,
        organization: Organization,
        workflow_id: str,
        requested_status: str | None,
        user_id: UUID,
    ) -> tuple[Workflow, str]:
        """Move a workflow to a new lifecycle status.

        The organization row is locked for the duration so concurrent
        activations cannot both pass the active-workflow quota. On any
        rejection the stored status is unchanged.

        Returns:
            Tuple of (workflow, previous status)

        Raises:
            WorkflowValidationError: Unknown status or failed activation rule
            WorkflowNotFoundError: If it does not exist in the organization
            AdmissionRejectedError: LIMIT_EXCEEDED when the plan allows no more
                active workflows
        """
        target = parse_status(requested_status)

        try:
            await self.organization_repo.lock(organization.id)
            workflow = await self.workflow_repo.get_for_organization(
                organization.id, workflow_id, for_update=True
            )
            if workflow is None:
                raise WorkflowNotFoundError()

            validate_transition(workflow, target)

            previous = workflow.status
            if target == WorkflowStatus.ACTIVE and previous != WorkflowStatus.ACTIVE.value:
                await self.usage_service.ensure_can_activate(organization)

            workflow.status = target.value
            if target == WorkflowStatus.ACTIVE:
                workflow.published_version = workflow.version
            workflow.last_modified_by = user_id
            workflow.updated_at = utc_now()

            await self.session.commit()
            await self.session.refresh(workflow)
        except Exception:
            await self.session.rollback()
            raise

        await invalidate_public_workflow(workflow.slug)
        logger.info(
            "Workflow status changed",
            workflow_id=workflow.id,
            organization_id=organization.id,
            old_status=previous,
            new_status=workflow.status,
        )
        return workflow, previous
