"""Execute endpoints end to end: admission rejections and fresh execution reads."""

from unittest.mock import patch

import pytest
from sqlalchemy import select

from src.app.core.config import get_settings
from src.app.models import AuditLog, AuditStatus, OrganizationUsage, current_period
from src.app.services.execution_service import QUEUE_FULL
from src.app.services.usage_service import LIMIT_EXCEEDED
from tests.factories import WorkflowFactory
from tests.helpers import create_active_workflow

pytestmark = pytest.mark.integration


def _one_pending_job_allowed():
    settings = get_settings().model_copy(update={"queue_max_pending": 1})
    return patch("src.app.services.execution_service.get_settings", return_value=settings)


async def _execute(client, org, workflow_id: str):
    return await client.post(
        f"/api/v1/workflows/{workflow_id}/execute",
        json={"orgId": org.organization.id, "payload": {}},
        headers=org.headers,
    )


async def _failed_audits(db_session, organization_id: str) -> list[AuditLog]:
    result = await db_session.execute(
        select(AuditLog).where(
            AuditLog.organization_id == organization_id,
            AuditLog.status == AuditStatus.FAILURE.value,
        )
    )
    return list(result.scalars().all())


async def test_queue_full_answers_429(client, db_session, team_org):
    workflow = await create_active_workflow(db_session, team_org.organization)
    await db_session.commit()

    with _one_pending_job_allowed():
        first = await _execute(client, team_org, workflow.id)
        second = await _execute(client, team_org, workflow.id)

    assert first.status_code == 202
    assert second.status_code == 429
    assert second.json()["detail"]["code"] == QUEUE_FULL

    audits = await _failed_audits(db_session, team_org.organization.id)
    assert len(audits) == 1
    assert audits[0].error_message.startswith(f"{QUEUE_FULL}: ")
    assert audits[0].user_id == team_org.admin.id


async def test_monthly_limit_answers_429_with_usage(client, db_session, free_org):
    workflow = await create_active_workflow(db_session, free_org.organization)
    db_session.add(
        OrganizationUsage(
            organization_id=free_org.organization.id,
            period=current_period(),
            workflow_executions=50,
        )
    )
    await db_session.commit()

    response = await _execute(client, free_org, workflow.id)

    assert response.status_code == 429
    detail = response.json()["detail"]
    assert detail["code"] == LIMIT_EXCEEDED
    assert detail["usage"] == {"current": 50, "limit": 50, "remaining": 0}


async def test_public_queue_full_answers_429(client, db_session, team_org):
    workflow = WorkflowFactory.public(organization_id=team_org.organization.id)
    db_session.add(workflow)
    await db_session.commit()

    with _one_pending_job_allowed():
        first = await client.post(f"/api/v1/workflows/public/{workflow.slug}/execute", json={})
        second = await client.post(f"/api/v1/workflows/public/{workflow.slug}/execute", json={})

    assert first.status_code == 202
    assert second.status_code == 429
    assert second.json()["detail"]["code"] == QUEUE_FULL


async def test_draft_with_manual_start_reports_empty_progress(client, db_session, team_org):
    workflow = WorkflowFactory.build(
        organization_id=team_org.organization.id,
        canvas={
            "nodes": [{"id": "start", "type": "manual-start", "position": {"x": 0, "y": 0}}],
            "edges": [],
        },
    )
    db_session.add(workflow)
    await db_session.commit()

    response = await _execute(client, team_org, workflow.id)
    assert response.status_code == 202
    execution_id = response.json()["executionId"]

    first = await client.get(f"/api/v1/executions/{execution_id}", headers=team_org.headers)
    second = await client.get(f"/api/v1/executions/{execution_id}", headers=team_org.headers)

    assert first.status_code == 200
    assert first.json()["execution"]["status"] == "pending"
    assert first.json()["progress"] == {"completed": 0, "failed": 0, "skipped": 0, "total": 0}
    assert second.json()["progress"] == first.json()["progress"]
