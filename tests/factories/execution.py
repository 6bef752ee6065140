"""Execution, job and log factories for test data generation."""

from datetime import timedelta
from uuid import uuid4

from polyfactory import Use

from src.app.models import (
    ExecutionLog,
    ExecutionStatus,
    JobStatus,
    LogLevel,
    TriggerType,
    WorkflowExecution,
    WorkflowJob,
)
from src.app.models.execution import default_context, default_metrics
from tests.factories.base import BaseFactory, utc_now


def manual_trigger() -> dict:
    return {
        "type": TriggerType.MANUAL.value,
        "payload": {},
        "source": {"ip": "203.0.113.7", "userAgent": "pytest"},
    }


def in_a_week():
    return utc_now() + timedelta(days=7)


class WorkflowExecutionFactory(BaseFactory):
    """Factory for generating WorkflowExecution test data.

    ``workflow_id`` and ``organization_id`` must be set.
    """

    __model__ = WorkflowExecution

    id = Use(uuid4)
    workflow_id = None
    workflow_version = 1
    organization_id = None
    trigger = Use(manual_trigger)
    status = ExecutionStatus.PENDING.value
    started_at = Use(utc_now)
    completed_at = None
    current_node_id = None
    completed_nodes = Use(list)
    failed_nodes = Use(list)
    skipped_nodes = Use(list)
    context = Use(default_context)
    result = None
    metrics = Use(default_metrics)


class WorkflowJobFactory(BaseFactory):
    """Factory for generating WorkflowJob test data.

    ``workflow_id``, ``execution_id`` and ``organization_id`` must be set.
    """

    __model__ = WorkflowJob

    id = Use(uuid4)
    workflow_id = None
    execution_id = None
    organization_id = None
    status = JobStatus.PENDING.value
    priority = 1
    trigger = Use(manual_trigger)
    run_at = Use(utc_now)
    locked_at = None
    locked_by = None
    attempts = 0
    max_attempts = 4
    last_error = None
    result = None
    created_at = Use(utc_now)
    completed_at = None
    expires_at = Use(in_a_week)

    @classmethod
    def processing(cls, worker_id: str = "worker-1", **kwargs):
        kwargs.setdefault("locked_at", utc_now())
        kwargs.setdefault("attempts", 1)
        return cls.build(status=JobStatus.PROCESSING.value, locked_by=worker_id, **kwargs)


class ExecutionLogFactory(BaseFactory):
    """Factory for generating ExecutionLog test data. ``execution_id`` must be set."""

    __model__ = ExecutionLog

    id = Use(uuid4)
    execution_id = None
    node_id = "start"
    timestamp = Use(utc_now)
    level = LogLevel.INFO.value
    event = "node_start"
    message = "Node started"
    data = None
    expires_at = Use(in_a_week)
