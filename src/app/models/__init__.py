"""Model exports.

Import from here: `from src.app.models import Workflow, WorkflowExecution`
"""

# Enums
from src.app.models.audit import AuditAction, AuditLog, AuditStatus
from src.app.models.enums import (
    ExecutionStatus,
    JobStatus,
    LogLevel,
    MembershipRole,
    NodeOutcome,
    PlanTier,
    TriggerType,
    WorkflowStatus,
)

# Table models
from src.app.models.execution import ExecutionLog, WorkflowExecution, WorkflowJob
from src.app.models.organization import Organization
from src.app.models.usage import OrganizationUsage, current_period
from src.app.models.user import OrganizationMembership, User
from src.app.models.workflow import Workflow

__all__ = [
    # Enums
    "AuditAction",
    "AuditStatus",
    "ExecutionStatus",
    "JobStatus",
    "LogLevel",
    "MembershipRole",
    "NodeOutcome",
    "PlanTier",
    "TriggerType",
    "WorkflowStatus",
    # Models
    "AuditLog",
    "ExecutionLog",
    "Organization",
    "OrganizationMembership",
    "OrganizationUsage",
    "User",
    "Workflow",
    "WorkflowExecution",
    "WorkflowJob",
    # Helpers
    "current_period",
]
