"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.app.api.dependencies.db import DBSession
from src.app.repositories import (
    ExecutionLogRepository,
    ExecutionRepository,
    JobRepository,
    MembershipRepository,
    OrganizationRepository,
    UsageRepository,
    UserRepository,
    WorkflowRepository,
)


def get_user_repository(session: DBSession) -> UserRepository:
    return UserRepository(session)


def get_membership_repository(session: DBSession) -> MembershipRepository:
    return MembershipRepository(session)


def get_organization_repository(session: DBSession) -> OrganizationRepository:
    return OrganizationRepository(session)


def get_workflow_repository(session: DBSession) -> WorkflowRepository:
    return WorkflowRepository(session)


def get_execution_repository(session: DBSession) -> ExecutionRepository:
    return ExecutionRepository(session)


def get_job_repository(session: DBSession) -> JobRepository:
    return JobRepository(session)


def get_execution_log_repository(session: DBSession) -> ExecutionLogRepository:
    return ExecutionLogRepository(session)


def get_usage_repository(session: DBSession) -> UsageRepository:
    return UsageRepository(session)


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
MembershipRepo = Annotated[MembershipRepository, Depends(get_membership_repository)]
OrganizationRepo = Annotated[OrganizationRepository, Depends(get_organization_repository)]
WorkflowRepo = Annotated[WorkflowRepository, Depends(get_workflow_repository)]
ExecutionRepo = Annotated[ExecutionRepository, Depends(get_execution_repository)]
JobRepo = Annotated[JobRepository, Depends(get_job_repository)]
ExecutionLogRepo = Annotated[ExecutionLogRepository, Depends(get_execution_log_repository)]
UsageRepo = Annotated[UsageRepository, Depends(get_usage_repository)]
