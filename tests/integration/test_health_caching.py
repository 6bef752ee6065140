"""/health against a real database: dependency report and result caching."""

from unittest.mock import patch

import pytest

from src.app.core import health
from src.app.core.health import HEALTH_CACHE_TTL, HEALTHY, reset_health_cache

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _fresh_cache():
    reset_health_cache()
    yield
    reset_health_cache()


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


async def test_reports_each_dependency(client):
    response = await client.get("/health")

    body = response.json()
    assert body["database"] == HEALTHY
    assert body["redis"] in (HEALTHY, "not_configured")
    assert body["cached"] is False
    # Temporal is optional in CI; without it the API is degraded, never unhealthy
    assert body["status"] in (HEALTHY, "degraded")
    assert response.status_code == (200 if body["status"] == HEALTHY else 503)


async def test_result_is_reused_until_ttl(client):
    clock = _Clock()
    with (
        patch("src.app.core.health.time.time", clock),
        patch.object(health, "_check_database", wraps=health._check_database) as check_db,
    ):
        fresh = (await client.get("/health")).json()
        clock.now += 2.5
        cached = (await client.get("/health")).json()
        clock.now += HEALTH_CACHE_TTL
        refreshed = (await client.get("/health")).json()

    assert fresh["cached"] is False
    assert "cache_age_seconds" not in fresh
    assert cached["cached"] is True
    assert cached["cache_age_seconds"] == 2.5
    assert cached["timestamp"] == fresh["timestamp"]
    assert refreshed["cached"] is False
    assert check_db.await_count == 2
