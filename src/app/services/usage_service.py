"""Plan limits and usage metering."""

from dataclasses import dataclass

from src.app.core.logging import get_logger
from src.app.models import Organization, PlanTier, current_period
from src.app.repositories import UsageRepository, WorkflowRepository
from src.app.repositories.usage_repository import UNLIMITED
from src.app.services.exceptions import AdmissionRejectedError, UsageSnapshot

logger = get_logger(__name__)

LIMIT_EXCEEDED = "LIMIT_EXCEEDED"


@dataclass(frozen=True)
class PlanLimits:
    """Per-plan quotas. -1 means unlimited."""

    max_executions_per_month: int
    max_active_workflows: int


PLAN_LIMITS: dict[PlanTier, PlanLimits] = {
    PlanTier.FREE: PlanLimits(max_executions_per_month=50, max_active_workflows=1),
    PlanTier.PRO: PlanLimits(max_executions_per_month=500, max_active_workflows=5),
    PlanTier.TEAM: PlanLimits(max_executions_per_month=5000, max_active_workflows=25),
    PlanTier.ENTERPRISE: PlanLimits(
        max_executions_per_month=UNLIMITED, max_active_workflows=UNLIMITED
    ),
}


def get_plan_limits(plan: PlanTier | str | None) -> PlanLimits:
    """Resolve limits for a plan, treating unknown plans as free."""
    try:
        tier = PlanTier(plan) if plan is not None else PlanTier.FREE
    except ValueError:
        tier = PlanTier.FREE
    return PLAN_LIMITS[tier]


def execution_limit_message(limit: int) -> str:
    return f"Monthly workflow execution limit reached ({limit})"


def active_workflow_limit_message(limit: int) -> str:
    return f"Active workflow limit reached ({limit})"


class UsageService:
    """Meters executions and active workflows against the organization's plan.

    Never commits: callers own the transaction so that a rejected or failed
    admission leaves no counter behind.
    """

    def __init__(self, usage_repo: UsageRepository, workflow_repo: WorkflowRepository):
        self.usage_repo = usage_repo
        self.workflow_repo = workflow_repo

    async def consume_execution(self, organization: Organization, workflow_id: str) -> int:
        """Count one execution for the current period if the plan allows it.

        Returns:
            The period's execution count after the increment

        Raises:
            AdmissionRejectedError: LIMIT_EXCEEDED when the plan quota is used up
        """
        limits = get_plan_limits(organization.plan)
        limit = limits.max_executions_per_month
        period = current_period()

        if limit != 0:
            count = await self.usage_repo.increment_executions_if_below(
                organization.id, period, workflow_id, limit
            )
            if count is not None:
                return count

        current = await self.usage_repo.get_execution_count(organization.id, period)
        logger.warning(
            "Execution limit reached",
            organization_id=organization.id,
            plan=organization.plan,
            current=current,
            limit=limit,
        )
        raise AdmissionRejectedError(
            execution_limit_message(limit),
            code=LIMIT_EXCEEDED,
            usage=UsageSnapshot(current=current, limit=limit),
        )

    async def ensure_can_activate(self, organization: Organization) -> None:
        """Reject activation when the plan's active-workflow quota is used up.

        Raises:
            AdmissionRejectedError: LIMIT_EXCEEDED with active workflow usage
        """
        limit = get_plan_limits(organization.plan).max_active_workflows
        if limit == UNLIMITED:
            return

        active = await self.workflow_repo.count_active(organization.id)
        if active >= limit:
            raise AdmissionRejectedError(
                active_workflow_limit_message(limit),
                code=LIMIT_EXCEEDED,
                usage=UsageSnapshot(current=active, limit=limit),
            )

    async def record_outcome(
        self, organization_id: str, period: str, success: bool
    ) -> None:
        """Count a terminal outcome against the period the execution was admitted in."""
        await self.usage_repo.record_outcome(organization_id, period, success)
