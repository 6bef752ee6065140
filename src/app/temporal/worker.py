"""
Temporal Worker - Separate process from API.

Run with:
    python -m src.app.temporal.worker
"""

import asyncio

import uvicorn
from fastapi import FastAPI
from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleSpec,
)
from temporalio.worker import Worker

from src.app.core.config import Settings, get_settings
from src.app.core.db import dispose_engine
from src.app.core.logging import get_logger, setup_logging
from src.app.temporal.activities import (
    purge_expired_jobs,
    purge_expired_logs,
    purge_old_executions,
    release_stale_locks,
)
from src.app.temporal.routing import maintenance_route
from src.app.temporal.workflows import QueueMaintenanceInput, QueueMaintenanceWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001
MAINTENANCE_SCHEDULE_ID = "queue-maintenance"


def create_worker(client: Client, task_queue: str) -> Worker:
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[QueueMaintenanceWorkflow],
        activities=[
            purge_expired_jobs,
            purge_expired_logs,
            purge_old_executions,
            release_stale_locks,
        ],
        max_concurrent_activities=20,
        max_concurrent_workflow_tasks=20,
    )


async def register_maintenance_schedule(
    client: Client, task_queue: str, settings: Settings
) -> None:
    """Create the queue maintenance schedule if it does not exist yet."""
    if not settings.maintenance_schedule:
        logger.info("Queue maintenance schedule not configured")
        return

    schedule = Schedule(
        action=ScheduleActionStartWorkflow(
            QueueMaintenanceWorkflow.run,
            QueueMaintenanceInput(
                lock_timeout_seconds=settings.job_lock_timeout_seconds,
                execution_retention_days=settings.execution_retention_days,
            ),
            id=f"{MAINTENANCE_SCHEDULE_ID}-run",
            task_queue=task_queue,
        ),
        spec=ScheduleSpec(cron_expressions=[settings.maintenance_schedule]),
    )
    try:
        await client.create_schedule(MAINTENANCE_SCHEDULE_ID, schedule)
        logger.info(
            "Queue maintenance scheduled",
            schedule_id=MAINTENANCE_SCHEDULE_ID,
            cron=settings.maintenance_schedule,
        )
    except ScheduleAlreadyRunningError:
        logger.info("Queue maintenance schedule already exists", schedule_id=MAINTENANCE_SCHEDULE_ID)


def create_health_app(task_queue: str) -> FastAPI:
    """Lightweight health app for K8s probes."""
    health_app = FastAPI(title="Temporal Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": "temporal-worker",
            "task_queue": task_queue,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    return health_app


async def run_health_server(task_queue: str, port: int = WORKER_HEALTH_PORT) -> None:
    config = uvicorn.Config(
        create_health_app(task_queue),
        host="0.0.0.0",
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)
    logger.info(f"Starting health server on port {port}")
    await server.serve()


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.debug)

    route = maintenance_route(settings)
    client = await Client.connect(settings.temporal_host, namespace=route.namespace)

    await register_maintenance_schedule(client, route.task_queue, settings)

    worker = create_worker(client, route.task_queue)
    logger.info(f"Polling task queue: {route.task_queue}")

    try:
        await asyncio.gather(worker.run(), run_health_server(route.task_queue))
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
