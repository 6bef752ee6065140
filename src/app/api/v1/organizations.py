"""Organization endpoints."""

from fastapi import APIRouter

from src.app.api.dependencies import (
    CurrentUser,
    MembershipRepo,
    OrganizationRepo,
    QueueServiceDep,
    authorize_organization,
)
from src.app.schemas.job import QueueStatusRead

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get(
    "/{org_id}/queue",
    response_model=QueueStatusRead,
    summary="Get queue status",
    responses={
        200: {"description": "Job counts per status"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the organization"},
    },
)
async def get_queue_status(
    org_id: str,
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    service: QueueServiceDep,
) -> QueueStatusRead:
    """Counts of the organization's jobs per status and the oldest pending job."""
    organization = await authorize_organization(
        current_user, org_id, membership_repo, organization_repo
    )
    counts = await service.queue_status(organization.id)
    return QueueStatusRead(**counts)
