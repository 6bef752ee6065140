"""Tests for graceful shutdown request tracking."""

import asyncio
import contextlib

import pytest

from src.app.core.shutdown import (
    SURFACE_API,
    SURFACE_INTERNAL,
    SURFACE_OTHER,
    SURFACE_PUBLIC,
    RequestTracker,
    surface_for_path,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("path", "surface"),
    [
        ("/api/v1/internal/jobs/claim", SURFACE_INTERNAL),
        ("/api/v1/workflows/public/lead-intake/execute", SURFACE_PUBLIC),
        ("/api/v1/workflows/wf_abc/execute", SURFACE_API),
        ("/api/v1/executions/3f2b", SURFACE_API),
        ("/docs", SURFACE_OTHER),
    ],
)
def test_surface_for_path(path: str, surface: str):
    assert surface_for_path(path) == surface


class TestRequestTracker:
    async def test_request_tracking(self):
        tracker = RequestTracker()

        async with tracker.track_request(SURFACE_INTERNAL):
            assert tracker.in_flight_count == 1
            assert tracker.in_flight_by_surface() == {SURFACE_INTERNAL: 1}

        assert tracker.in_flight_count == 0
        assert tracker.in_flight_by_surface() == {}

    async def test_counts_per_surface(self):
        tracker = RequestTracker()
        release = asyncio.Event()

        async def request(surface: str):
            async with tracker.track_request(surface):
                await release.wait()

        tasks = [
            asyncio.create_task(request(SURFACE_INTERNAL)),
            asyncio.create_task(request(SURFACE_INTERNAL)),
            asyncio.create_task(request(SURFACE_PUBLIC)),
        ]
        await asyncio.sleep(0.05)

        assert tracker.in_flight_by_surface() == {SURFACE_INTERNAL: 2, SURFACE_PUBLIC: 1}

        release.set()
        await asyncio.gather(*tasks)
        assert tracker.in_flight_count == 0

    async def test_shutdown_with_no_requests(self):
        tracker = RequestTracker()

        await tracker.start_shutdown()

        assert tracker.is_shutting_down
        assert await tracker.wait_for_drain(timeout=1.0) is True

    async def test_shutdown_waits_for_in_flight_requests(self):
        tracker = RequestTracker()

        async def long_request():
            async with tracker.track_request(SURFACE_API):
                await asyncio.sleep(0.2)

        task = asyncio.create_task(long_request())
        await asyncio.sleep(0.05)
        await tracker.start_shutdown()

        assert await tracker.wait_for_drain(timeout=1.0) is True
        assert tracker.in_flight_count == 0
        await task

    async def test_shutdown_timeout(self):
        tracker = RequestTracker()

        async def very_long_request():
            async with tracker.track_request(SURFACE_INTERNAL):
                await asyncio.sleep(5.0)

        task = asyncio.create_task(very_long_request())
        await asyncio.sleep(0.05)
        await tracker.start_shutdown()

        assert await tracker.wait_for_drain(timeout=0.1) is False
        assert tracker.in_flight_by_surface() == {SURFACE_INTERNAL: 1}

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def test_reset(self):
        tracker = RequestTracker()
        tracker._shutting_down = True
        tracker.reset()
        assert not tracker.is_shutting_down
        assert tracker.in_flight_count == 0
