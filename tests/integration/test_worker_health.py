"""Tests for the Temporal worker's health server."""

import asyncio
import contextlib
import socket

import pytest
from httpx import AsyncClient

from src.app.temporal.worker import run_health_server

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

TASK_QUEUE = "netpad.maintenance.00"


def get_free_port() -> int:
    """Get a free port number."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


@pytest.fixture
async def health_port():
    """Run the health server on a free port for the duration of a test."""
    port = get_free_port()
    task = asyncio.create_task(run_health_server(TASK_QUEUE, port))
    await asyncio.sleep(0.5)

    yield port

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def test_health_endpoint(health_port: int):
    async with AsyncClient(base_url=f"http://localhost:{health_port}") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "service": "temporal-worker",
        "task_queue": TASK_QUEUE,
    }


async def test_ready_endpoint(health_port: int):
    async with AsyncClient(base_url=f"http://localhost:{health_port}") as client:
        response = await client.get("/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"
