"""Executor-facing job queue endpoint tests."""

from uuid import uuid4

import pytest

from src.app.services.exceptions import ExecutionNotFoundError, JobStateError
from tests.factories import WorkflowExecutionFactory, WorkflowJobFactory, utc_now

pytestmark = pytest.mark.unit

CLAIM = "/api/v1/internal/jobs/claim"


def _job(**kwargs):
    kwargs.setdefault("status", "processing")
    kwargs.setdefault("locked_by", "worker-1")
    kwargs.setdefault("locked_at", utc_now())
    return WorkflowJobFactory.build(
        workflow_id="wf_abc123",
        execution_id=uuid4(),
        organization_id="org_abc",
        attempts=1,
        **kwargs,
    )


class TestWorkerAuthentication:
    def test_unconfigured_secret_closes_the_queue(self, api_client, queue_service):
        response = api_client.post(
            CLAIM, json={"workerId": "worker-1"}, headers={"X-Worker-Secret": "anything"}
        )

        assert response.status_code == 503
        queue_service.claim.assert_not_awaited()

    def test_wrong_secret(self, api_client, worker_secret, queue_service):
        response = api_client.post(
            CLAIM, json={"workerId": "worker-1"}, headers={"X-Worker-Secret": "wrong"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid worker secret"
        queue_service.claim.assert_not_awaited()

    def test_missing_secret(self, api_client, worker_secret):
        response = api_client.post(CLAIM, json={"workerId": "worker-1"})

        assert response.status_code == 401

    def test_bearer_token_is_not_enough(self, api_client, worker_secret):
        response = api_client.post(
            CLAIM, json={"workerId": "worker-1"}, headers={"Authorization": "Bearer test-token"}
        )

        assert response.status_code == 401


class TestClaim:
    def test_returns_locked_job(self, api_client, worker_secret, queue_service):
        job = _job()
        queue_service.claim.return_value = job

        response = api_client.post(
            CLAIM, json={"workerId": "worker-1"}, headers={"X-Worker-Secret": worker_secret}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(job.id)
        assert body["lockedBy"] == "worker-1"
        assert body["status"] == "processing"
        queue_service.claim.assert_awaited_once_with("worker-1")

    def test_empty_queue(self, api_client, worker_secret, queue_service):
        queue_service.claim.return_value = None

        response = api_client.post(
            CLAIM, json={"workerId": "worker-1"}, headers={"X-Worker-Secret": worker_secret}
        )

        assert response.status_code == 204
        assert response.content == b""

    def test_worker_id_required(self, api_client, worker_secret):
        response = api_client.post(CLAIM, json={}, headers={"X-Worker-Secret": worker_secret})

        assert response.status_code == 422


class TestCompleteAndFail:
    def test_complete(self, api_client, worker_secret, queue_service):
        job = _job(status="completed", result={"ok": True}, completed_at=utc_now())
        queue_service.complete.return_value = job

        response = api_client.post(
            f"/api/v1/internal/jobs/{job.id}/complete",
            json={"result": {"ok": True}, "durationMs": 840},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        queue_service.complete.assert_awaited_once_with(job.id, {"ok": True}, 840)

    def test_complete_finished_job_conflicts(self, api_client, worker_secret, queue_service):
        queue_service.complete.side_effect = JobStateError(
            "Job is not being processed", conflict=True
        )

        response = api_client.post(
            f"/api/v1/internal/jobs/{uuid4()}/complete",
            json={},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 409

    def test_fail_passes_retryable_flag(self, api_client, worker_secret, queue_service):
        job = _job(status="pending", last_error="timeout")
        queue_service.fail.return_value = job

        response = api_client.post(
            f"/api/v1/internal/jobs/{job.id}/fail",
            json={"error": "timeout", "retryable": False},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 200
        assert response.json()["lastError"] == "timeout"
        queue_service.fail.assert_awaited_once_with(job.id, "timeout", False)

    def test_fail_unknown_job(self, api_client, worker_secret, queue_service):
        queue_service.fail.side_effect = ExecutionNotFoundError("Job not found")

        response = api_client.post(
            f"/api/v1/internal/jobs/{uuid4()}/fail",
            json={"error": "boom"},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 404


class TestProgressReporting:
    def test_node_outcome(self, api_client, worker_secret, queue_service):
        execution = WorkflowExecutionFactory.build(
            workflow_id="wf_abc123",
            organization_id="org_abc",
            status="running",
            current_node_id="send",
            completed_nodes=["start", "send"],
        )
        queue_service.report_node.return_value = execution

        response = api_client.post(
            f"/api/v1/internal/jobs/executions/{execution.id}/nodes",
            json={"nodeId": "send", "outcome": "completed", "durationMs": 120},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 200
        assert response.json()["completedNodes"] == ["start", "send"]
        report = queue_service.report_node.await_args.args[1]
        assert report.node_id == "send"
        assert report.duration_ms == 120

    def test_unknown_outcome_is_rejected(self, api_client, worker_secret, queue_service):
        response = api_client.post(
            f"/api/v1/internal/jobs/executions/{uuid4()}/nodes",
            json={"nodeId": "send", "outcome": "exploded"},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 422
        queue_service.report_node.assert_not_awaited()

    def test_report_after_completion_conflicts(self, api_client, worker_secret, queue_service):
        queue_service.report_node.side_effect = JobStateError(
            "Execution already finished", conflict=True
        )

        response = api_client.post(
            f"/api/v1/internal/jobs/executions/{uuid4()}/nodes",
            json={"nodeId": "send", "outcome": "failed", "error": "boom"},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 409

    def test_append_logs(self, api_client, worker_secret, queue_service):
        queue_service.append_logs.return_value = 2

        response = api_client.post(
            f"/api/v1/internal/jobs/executions/{uuid4()}/logs",
            json={
                "entries": [
                    {"nodeId": "start", "event": "node_start", "message": "Started"},
                    {"nodeId": "start", "level": "warn", "event": "retry", "message": "Slow"},
                ]
            },
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 201
        assert response.json() == {"appended": 2}

    def test_empty_log_batch_is_rejected(self, api_client, worker_secret):
        response = api_client.post(
            f"/api/v1/internal/jobs/executions/{uuid4()}/logs",
            json={"entries": []},
            headers={"X-Worker-Secret": worker_secret},
        )

        assert response.status_code == 422


class TestQueueStatus:
    def test_counts_for_member(self, api_client, api_organization, queue_service):
        queue_service.queue_status.return_value = {
            "pending": 3,
            "processing": 1,
            "failed": 0,
            "completed": 12,
            "oldest_pending_at": None,
        }

        response = api_client.get(
            f"/api/v1/organizations/{api_organization.id}/queue",
            headers={"Authorization": "Bearer test-token"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "pending": 3,
            "processing": 1,
            "failed": 0,
            "completed": 12,
            "oldestPendingAt": None,
        }
        queue_service.queue_status.assert_awaited_once_with(api_organization.id)

    def test_non_member(self, api_client, queue_service):
        response = api_client.get(
            "/api/v1/organizations/org_elsewhere/queue",
            headers={"Authorization": "Bearer test-token"},
        )

        assert response.status_code == 403
        queue_service.queue_status.assert_not_awaited()
