"""Repository layer - data access abstraction.

Re-exports all repositories for convenient imports.
"""

from src.app.repositories.audit_repository import AuditLogRepository
from src.app.repositories.base import BaseRepository
from src.app.repositories.execution_log_repository import ExecutionLogRepository
from src.app.repositories.execution_repository import ExecutionRepository
from src.app.repositories.job_repository import JobRepository
from src.app.repositories.membership_repository import MembershipRepository
from src.app.repositories.organization_repository import OrganizationRepository
from src.app.repositories.usage_repository import UsageRepository
from src.app.repositories.user_repository import UserRepository
from src.app.repositories.workflow_repository import WorkflowRepository

__all__ = [
    # Base
    "BaseRepository",
    # Identity
    "MembershipRepository",
    "OrganizationRepository",
    "UserRepository",
    # Workflows
    "ExecutionLogRepository",
    "ExecutionRepository",
    "JobRepository",
    "WorkflowRepository",
    # Billing / audit
    "AuditLogRepository",
    "UsageRepository",
]
