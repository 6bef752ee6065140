"""Test helper functions for common data creation patterns."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.security import create_access_token
from src.app.models import (
    MembershipRole,
    Organization,
    OrganizationMembership,
    PlanTier,
    User,
    Workflow,
)
from tests.factories import (
    OrganizationFactory,
    OrganizationMembershipFactory,
    UserFactory,
    WorkflowFactory,
)


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header with a freshly signed access token for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


async def create_organization(
    session: AsyncSession,
    plan: PlanTier = PlanTier.FREE,
    **organization_kwargs,
) -> Organization:
    organization = OrganizationFactory.on_plan(plan, **organization_kwargs)
    session.add(organization)
    await session.flush()
    return organization


async def create_user_with_membership(
    session: AsyncSession,
    organization: Organization,
    role: MembershipRole = MembershipRole.ADMIN,
    **user_kwargs,
) -> tuple[User, OrganizationMembership]:
    """Create a user and their membership in an organization.

    Args:
        session: Database session
        organization: Organization to create membership in
        role: Role for the membership (default: ADMIN)
        **user_kwargs: Additional args passed to UserFactory

    Returns:
        Tuple of (user, membership)
    """
    user = UserFactory.build(**user_kwargs)
    session.add(user)
    await session.flush()

    membership = OrganizationMembershipFactory.build(
        user_id=user.id,
        organization_id=organization.id,
        role=role.value,
    )
    session.add(membership)
    await session.flush()

    return user, membership


async def create_active_workflow(
    session: AsyncSession,
    organization: Organization,
    **workflow_kwargs,
) -> Workflow:
    """Persist a runnable, active workflow owned by ``organization``."""
    workflow = WorkflowFactory.active(organization_id=organization.id, **workflow_kwargs)
    session.add(workflow)
    await session.flush()
    return workflow
