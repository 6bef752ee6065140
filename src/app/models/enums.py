"""Shared enums for models."""

from enum import Enum


class MembershipRole(str, Enum):
    """User role within an organization."""

    ADMIN = "admin"
    MEMBER = "member"


class PlanTier(str, Enum):
    """Billing plan of an organization."""

    FREE = "free"
    PRO = "pro"
    TEAM = "team"
    ENTERPRISE = "enterprise"


class WorkflowStatus(str, Enum):
    """Workflow lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class ExecutionStatus(str, Enum):
    """Execution state as reported by the executor."""

    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )


class JobStatus(str, Enum):
    """Queue entry status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TriggerType(str, Enum):
    """What started an execution."""

    MANUAL = "manual"
    SCHEDULE = "schedule"
    WEBHOOK = "webhook"
    FORM_SUBMISSION = "form_submission"
    API = "api"


class LogLevel(str, Enum):
    """Execution log severity."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class NodeOutcome(str, Enum):
    """Outcome of a single canvas node within an execution."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
