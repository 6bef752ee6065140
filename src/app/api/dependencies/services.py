"""Service factory dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.api.dependencies.db import DBSession
from src.app.api.dependencies.repositories import (
    ExecutionLogRepo,
    ExecutionRepo,
    JobRepo,
    OrganizationRepo,
    UsageRepo,
    WorkflowRepo,
)
from src.app.core.db.engine import get_engine
from src.app.repositories import AuditLogRepository
from src.app.services.audit_service import AuditService
from src.app.services.execution_service import ExecutionService
from src.app.services.public_workflow_service import PublicWorkflowService
from src.app.services.queue_service import QueueService
from src.app.services.usage_service import UsageService
from src.app.services.workflow_service import WorkflowService


def get_usage_service(usage_repo: UsageRepo, workflow_repo: WorkflowRepo) -> UsageService:
    """Get usage service (shares the request session, never commits)."""
    return UsageService(usage_repo, workflow_repo)


UsageServiceDep = Annotated[UsageService, Depends(get_usage_service)]


def get_workflow_service(
    workflow_repo: WorkflowRepo,
    organization_repo: OrganizationRepo,
    usage_service: UsageServiceDep,
    session: DBSession,
) -> WorkflowService:
    """Get workflow service."""
    return WorkflowService(workflow_repo, organization_repo, usage_service, session)


def get_execution_service(
    execution_repo: ExecutionRepo,
    job_repo: JobRepo,
    log_repo: ExecutionLogRepo,
    usage_service: UsageServiceDep,
    session: DBSession,
) -> ExecutionService:
    """Get execution service."""
    return ExecutionService(execution_repo, job_repo, log_repo, usage_service, session)


ExecutionServiceDep = Annotated[ExecutionService, Depends(get_execution_service)]


def get_queue_service(
    job_repo: JobRepo,
    execution_repo: ExecutionRepo,
    log_repo: ExecutionLogRepo,
    workflow_repo: WorkflowRepo,
    usage_service: UsageServiceDep,
    session: DBSession,
) -> QueueService:
    """Get job queue service."""
    return QueueService(job_repo, execution_repo, log_repo, workflow_repo, usage_service, session)


def get_public_workflow_service(
    workflow_repo: WorkflowRepo,
    organization_repo: OrganizationRepo,
    execution_repo: ExecutionRepo,
    log_repo: ExecutionLogRepo,
    execution_service: ExecutionServiceDep,
) -> PublicWorkflowService:
    """Get public workflow service (no authentication required)."""
    return PublicWorkflowService(
        workflow_repo, organization_repo, execution_repo, log_repo, execution_service
    )


async def get_audit_service() -> AsyncGenerator[AuditService]:
    """Get audit service with its own isolated session.

    Uses a dedicated session that commits independently from business transactions.
    This ensures audit logs are preserved even if the main transaction rolls back.
    """
    engine = get_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        repo = AuditLogRepository(session)
        yield AuditService(repo, session)


WorkflowServiceDep = Annotated[WorkflowService, Depends(get_workflow_service)]
QueueServiceDep = Annotated[QueueService, Depends(get_queue_service)]
PublicWorkflowServiceDep = Annotated[PublicWorkflowService, Depends(get_public_workflow_service)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
