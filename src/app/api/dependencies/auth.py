"""Authentication and authorization dependencies."""

import secrets
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, status

from src.app.api.dependencies.repositories import MembershipRepo, OrganizationRepo, UserRepo
from src.app.core.config import get_settings
from src.app.core.logging import bind_organization_context, bind_user_context
from src.app.core.security import ACCESS_TOKEN_TYPE, decode_token
from src.app.models import MembershipRole, Organization, User
from src.app.repositories import MembershipRepository, OrganizationRepository


async def get_current_user(
    user_repo: UserRepo,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Validate the bearer access token and return the active user.

    Tokens are issued elsewhere; this service only verifies them.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    payload = decode_token(authorization[7:])
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user_uuid = UUID(user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user_id in token",
        ) from e

    user = await user_repo.get_by_id(user_uuid)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    bind_user_context(user.id, user.email)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def authorize_organization(
    user: User,
    organization_id: str | None,
    membership_repo: MembershipRepository,
    organization_repo: OrganizationRepository,
    *,
    require_admin: bool = False,
) -> Organization:
    """Check that the user is an active member of an active organization.

    Used directly by routes that take ``orgId`` in the request body, and by
    ``get_query_organization`` for routes that take it as a query parameter.

    Raises:
        HTTPException: 400 without an organization id, 403 without access
    """
    if not organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization ID is required",
        )

    membership = await membership_repo.get_active_membership(user.id, organization_id)
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this organization",
        )

    if require_admin and membership.role != MembershipRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required for this operation",
        )

    organization = await organization_repo.get_active(organization_id)
    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization is inactive",
        )

    bind_organization_context(organization.id)
    return organization


async def get_query_organization(
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    org_id: Annotated[str | None, Query(alias="orgId", max_length=32)] = None,
) -> Organization:
    """Organization named by the ``orgId`` query parameter, for members only."""
    return await authorize_organization(
        current_user, org_id, membership_repo, organization_repo
    )


QueryOrganization = Annotated[Organization, Depends(get_query_organization)]


async def get_query_admin_organization(
    current_user: CurrentUser,
    membership_repo: MembershipRepo,
    organization_repo: OrganizationRepo,
    org_id: Annotated[str | None, Query(alias="orgId", max_length=32)] = None,
) -> Organization:
    """Organization named by the ``orgId`` query parameter, for admins only."""
    return await authorize_organization(
        current_user, org_id, membership_repo, organization_repo, require_admin=True
    )


QueryAdminOrganization = Annotated[Organization, Depends(get_query_admin_organization)]


async def require_worker(
    x_worker_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Authenticate the external executor by shared secret.

    Responds 503 when no secret is configured so the queue is never open.
    """
    expected = get_settings().worker_secret
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Worker endpoints are not configured",
        )

    if not x_worker_secret or not secrets.compare_digest(x_worker_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid worker secret",
        )


WorkerAuth = Depends(require_worker)
