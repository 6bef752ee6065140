"""FastAPI dependency injection definitions.

Re-exports all dependencies for convenient imports.
"""

# Auth
from src.app.api.dependencies.auth import (
    CurrentUser,
    QueryAdminOrganization,
    QueryOrganization,
    WorkerAuth,
    authorize_organization,
    get_current_user,
    get_query_admin_organization,
    get_query_organization,
    require_worker,
)

# Database
from src.app.api.dependencies.db import DBSession, get_db_session

# Repositories
from src.app.api.dependencies.repositories import (
    ExecutionLogRepo,
    ExecutionRepo,
    JobRepo,
    MembershipRepo,
    OrganizationRepo,
    UsageRepo,
    UserRepo,
    WorkflowRepo,
    get_execution_log_repository,
    get_execution_repository,
    get_job_repository,
    get_membership_repository,
    get_organization_repository,
    get_usage_repository,
    get_user_repository,
    get_workflow_repository,
)

# Services
from src.app.api.dependencies.services import (
    AuditServiceDep,
    ExecutionServiceDep,
    PublicWorkflowServiceDep,
    QueueServiceDep,
    UsageServiceDep,
    WorkflowServiceDep,
    get_audit_service,
    get_execution_service,
    get_public_workflow_service,
    get_queue_service,
    get_usage_service,
    get_workflow_service,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Auth
    "CurrentUser",
    "QueryAdminOrganization",
    "QueryOrganization",
    "WorkerAuth",
    "authorize_organization",
    "get_current_user",
    "get_query_admin_organization",
    "get_query_organization",
    "require_worker",
    # Repositories
    "ExecutionLogRepo",
    "ExecutionRepo",
    "JobRepo",
    "MembershipRepo",
    "OrganizationRepo",
    "UsageRepo",
    "UserRepo",
    "WorkflowRepo",
    "get_execution_log_repository",
    "get_execution_repository",
    "get_job_repository",
    "get_membership_repository",
    "get_organization_repository",
    "get_usage_repository",
    "get_user_repository",
    "get_workflow_repository",
    # Services
    "AuditServiceDep",
    "ExecutionServiceDep",
    "PublicWorkflowServiceDep",
    "QueueServiceDep",
    "UsageServiceDep",
    "WorkflowServiceDep",
    "get_audit_service",
    "get_execution_service",
    "get_public_workflow_service",
    "get_queue_service",
    "get_usage_service",
    "get_workflow_service",
]
