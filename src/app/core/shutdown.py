"""In-flight request tracking for graceful shutdown.

Requests are counted per API surface so a draining instance can report whether
it is still waiting on executors (``internal``), anonymous callers (``public``)
or dashboard users (``api``).
"""

import asyncio
from collections import Counter
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from src.app.core.logging import get_logger

logger = get_logger(__name__)

SURFACE_INTERNAL = "internal"
SURFACE_PUBLIC = "public"
SURFACE_API = "api"
SURFACE_OTHER = "other"

_SURFACE_PREFIXES = (
    ("/api/v1/internal/", SURFACE_INTERNAL),
    ("/api/v1/workflows/public/", SURFACE_PUBLIC),
    ("/api/v1/", SURFACE_API),
)


def surface_for_path(path: str) -> str:
    """Classify a request path into the API surface it belongs to."""
    for prefix, surface in _SURFACE_PREFIXES:
        if path.startswith(prefix):
            return surface
    return SURFACE_OTHER


class RequestTracker:
    """Counts in-flight requests and signals when the last one finishes after shutdown."""

    def __init__(self) -> None:
        self._in_flight: Counter[str] = Counter()
        self._shutting_down = False
        self._lock = asyncio.Lock()
        self._drain_event = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return sum(self._in_flight.values())

    def in_flight_by_surface(self) -> dict[str, int]:
        """Non-zero in-flight counts keyed by surface."""
        return {surface: count for surface, count in self._in_flight.items() if count}

    @asynccontextmanager
    async def track_request(self, surface: str = SURFACE_OTHER) -> AsyncGenerator[None]:
        async with self._lock:
            self._in_flight[surface] += 1
        try:
            yield
        finally:
            async with self._lock:
                self._in_flight[surface] -= 1
                if self._shutting_down and self.in_flight_count == 0:
                    logger.info("All in-flight requests drained")
                    self._drain_event.set()

    async def start_shutdown(self) -> None:
        """Stop accepting work; the drain event fires once nothing is in flight."""
        self._shutting_down = True
        async with self._lock:
            if self.in_flight_count == 0:
                self._drain_event.set()
            else:
                logger.info(
                    "Waiting for in-flight requests",
                    in_flight=self.in_flight_by_surface(),
                )

    async def wait_for_drain(self, timeout: float) -> bool:
        """
        Wait for all in-flight requests to complete.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if all requests completed within timeout, False otherwise
        """
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Shutdown timeout with requests still in flight",
                timeout_seconds=timeout,
                in_flight=self.in_flight_by_surface(),
            )
            return False
        return True

    def reset(self) -> None:
        """Reset tracker state. For testing only."""
        self._in_flight = Counter()
        self._shutting_down = False
        self._drain_event = asyncio.Event()


request_tracker = RequestTracker()
