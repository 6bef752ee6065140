"""Admission and queue claim behaviour under concurrency, against PostgreSQL."""

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from src.app.core.config import get_settings
from src.app.models import OrganizationUsage, TriggerType, WorkflowJob, current_period
from src.app.repositories import (
    ExecutionLogRepository,
    ExecutionRepository,
    JobRepository,
    UsageRepository,
    WorkflowRepository,
)
from src.app.services.exceptions import AdmissionRejectedError
from src.app.services.execution_service import QUEUE_FULL, ExecutionService, build_trigger
from src.app.services.queue_service import QueueService
from src.app.services.usage_service import LIMIT_EXCEEDED, UsageService
from tests.helpers import create_active_workflow

pytestmark = pytest.mark.integration

TRIGGER = build_trigger(TriggerType.MANUAL, {}, "203.0.113.7", "pytest")


def _usage_service(session: AsyncSession) -> UsageService:
    return UsageService(UsageRepository(session), WorkflowRepository(session))


async def _admit(engine: AsyncEngine, organization, workflow):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        service = ExecutionService(
            ExecutionRepository(session),
            JobRepository(session),
            ExecutionLogRepository(session),
            _usage_service(session),
            session,
        )
        return await service.admit(organization, workflow, TRIGGER)


async def _claim(engine: AsyncEngine, worker_id: str):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        service = QueueService(
            JobRepository(session),
            ExecutionRepository(session),
            ExecutionLogRepository(session),
            WorkflowRepository(session),
            _usage_service(session),
            session,
        )
        return await service.claim(worker_id)


async def _job_count(db_session: AsyncSession, organization_id: str) -> int:
    result = await db_session.execute(
        select(func.count()).select_from(WorkflowJob).where(
            WorkflowJob.organization_id == organization_id
        )
    )
    return result.scalar_one()


async def _metered(db_session: AsyncSession, organization_id: str) -> int:
    usage = await db_session.get(OrganizationUsage, (organization_id, current_period()))
    if usage is None:
        return 0
    await db_session.refresh(usage)
    return usage.workflow_executions


async def test_concurrent_admissions_respect_queue_depth(engine, db_session, team_org):
    workflow = await create_active_workflow(db_session, team_org.organization)
    await db_session.commit()

    settings = get_settings().model_copy(update={"queue_max_pending": 3})
    with patch("src.app.services.execution_service.get_settings", return_value=settings):
        results = await asyncio.gather(
            *(_admit(engine, team_org.organization, workflow) for _ in range(8)),
            return_exceptions=True,
        )

    admitted = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, AdmissionRejectedError)]
    assert len(admitted) == 3
    assert len(rejected) == 5
    assert {r.code for r in rejected} == {QUEUE_FULL}

    # Rejected admissions leave no job and are never metered
    assert await _job_count(db_session, team_org.organization.id) == 3
    assert await _metered(db_session, team_org.organization.id) == 3


async def test_concurrent_admissions_respect_monthly_limit(engine, db_session, free_org):
    workflow = await create_active_workflow(db_session, free_org.organization)
    db_session.add(
        OrganizationUsage(
            organization_id=free_org.organization.id,
            period=current_period(),
            workflow_executions=49,
        )
    )
    await db_session.commit()

    results = await asyncio.gather(
        *(_admit(engine, free_org.organization, workflow) for _ in range(4)),
        return_exceptions=True,
    )

    admitted = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, AdmissionRejectedError)]
    assert len(admitted) == 1
    assert len(rejected) == 3
    assert all(r.code == LIMIT_EXCEEDED for r in rejected)
    assert rejected[0].usage.as_dict() == {"current": 50, "limit": 50, "remaining": 0}

    assert await _metered(db_session, free_org.organization.id) == 50
    assert await _job_count(db_session, free_org.organization.id) == 1


async def test_concurrent_claims_never_share_a_job(engine, db_session, team_org):
    workflow = await create_active_workflow(db_session, team_org.organization)
    await db_session.commit()
    for _ in range(2):
        await _admit(engine, team_org.organization, workflow)

    claimed = await asyncio.gather(*(_claim(engine, f"worker-{i}") for i in range(4)))

    jobs = [job for job in claimed if job is not None]
    ours = [job for job in jobs if job.organization_id == team_org.organization.id]
    assert len({job.id for job in jobs}) == len(jobs)
    assert len(ours) == 2
    assert all(job.attempts == 1 for job in ours)
    assert len({job.locked_by for job in ours}) == 2


async def test_execute_over_http(client, db_session, team_org):
    workflow = await create_active_workflow(db_session, team_org.organization)
    await db_session.commit()

    response = await client.post(
        f"/api/v1/workflows/{workflow.id}/execute",
        json={"orgId": team_org.organization.id, "payload": {"source": "integration"}},
        headers=team_org.headers,
    )
    assert response.status_code == 202
    execution_id = response.json()["executionId"]

    response = await client.get(f"/api/v1/executions/{execution_id}", headers=team_org.headers)
    assert response.status_code == 200
    body = response.json()
    assert body["execution"]["status"] == "pending"
    assert body["execution"]["trigger"]["payload"] == {"source": "integration"}
    assert body["progress"]["total"] == 0
    assert body["job"]["canCancel"] is True

    response = await client.get(
        f"/api/v1/organizations/{team_org.organization.id}/queue", headers=team_org.headers
    )
    assert response.json()["pending"] == 1
