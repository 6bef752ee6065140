"""Repository for Organization entity."""

from sqlmodel import select

from src.app.models import Organization
from src.app.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for organizations."""

    model = Organization

    async def get_active(self, organization_id: str) -> Organization | None:
        """Get an organization if it exists and is active."""
        result = await self.session.execute(
            select(Organization).where(
                Organization.id == organization_id,
                Organization.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def lock(self, organization_id: str) -> None:
        """Lock the organization row until the transaction ends.

        Serializes writers that check an organization-wide quota.
        """
        await self.session.execute(
            select(Organization.id).where(Organization.id == organization_id).with_for_update()
        )
