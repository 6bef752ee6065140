"""Integration test fixtures for database and HTTP client operations.

These fixtures require external resources (PostgreSQL database).
Uses polyfactory for type-safe test data generation.
"""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.app.core import db
from src.app.core import redis as redis_core
from src.app.core.config import get_settings
from src.app.core.db import run_migrations_sync
from src.app.main import create_app
from src.app.models import MembershipRole, Organization, PlanTier, User
from tests.helpers import auth_headers, create_organization, create_user_with_membership
from tests.utils.cleanup import cleanup_organization_cascade, cleanup_user_cascade


@dataclass
class OrgContext:
    """A persisted organization with one admin member."""

    organization: Organization
    admin: User

    @property
    def headers(self) -> dict[str, str]:
        return auth_headers(self.admin)


@pytest.fixture(autouse=True)
async def _reset_redis_between_tests() -> AsyncGenerator[None]:
    """Reset Redis state between tests to prevent event loop issues.

    Redis clients hold references to their event loop. When pytest creates
    a new event loop for each test, stale Redis clients cause
    'Event loop is closed' errors.
    """
    redis_core.reset_redis_state()
    yield
    await redis_core.close_redis()


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Create test database engine and ensure migrations are applied."""
    await db.dispose_engine()

    settings = get_settings()
    test_engine = create_async_engine(settings.database_url, poolclass=NullPool)

    await asyncio.to_thread(run_migrations_sync)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for database operations.

    The session does NOT auto-commit. Tests must call ``await session.commit()``
    to make rows visible to the app under test.
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


async def _org_context(
    engine: AsyncEngine, db_session: AsyncSession, plan: PlanTier
) -> AsyncGenerator[OrgContext]:
    organization = await create_organization(db_session, plan)
    admin, _ = await create_user_with_membership(db_session, organization, MembershipRole.ADMIN)
    await db_session.commit()

    yield OrgContext(organization=organization, admin=admin)

    async with engine.connect() as conn:
        await cleanup_organization_cascade(conn, organization.id)
        await cleanup_user_cascade(conn, admin.id)
        await conn.commit()


@pytest.fixture
async def free_org(engine: AsyncEngine, db_session: AsyncSession) -> AsyncGenerator[OrgContext]:
    """Isolated FREE-plan organization with an admin, removed after the test."""
    async for context in _org_context(engine, db_session, PlanTier.FREE):
        yield context


@pytest.fixture
async def team_org(engine: AsyncEngine, db_session: AsyncSession) -> AsyncGenerator[OrgContext]:
    """Isolated TEAM-plan organization with an admin, removed after the test."""
    async for context in _org_context(engine, db_session, PlanTier.TEAM):
        yield context


@pytest.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient]:
    """HTTP client against the real app and database."""
    await db.dispose_engine()

    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await db.dispose_engine()
