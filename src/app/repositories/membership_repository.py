"""Repository for OrganizationMembership entity."""

from uuid import UUID

from sqlmodel import select

from src.app.models import OrganizationMembership
from src.app.repositories.base import BaseRepository


class MembershipRepository(BaseRepository[OrganizationMembership]):
    """Repository for user-organization memberships."""

    model = OrganizationMembership

    async def get_active_membership(
        self, user_id: UUID, organization_id: str
    ) -> OrganizationMembership | None:
        """Get active membership for a user in an organization."""
        result = await self.session.execute(
            select(OrganizationMembership).where(
                OrganizationMembership.user_id == user_id,
                OrganizationMembership.organization_id == organization_id,
                OrganizationMembership.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()
