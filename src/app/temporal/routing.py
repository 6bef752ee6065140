"""Where queue maintenance runs: Temporal namespace plus task queue.

Queue names follow ``{prefix}.{kind}.{shard:02d}`` so several deployments can
share one Temporal namespace without polling each other's work.
"""

from dataclasses import dataclass
from enum import StrEnum

from src.app.core.config import Settings


class QueueKind(StrEnum):
    MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class TemporalRoute:
    namespace: str
    task_queue: str


def task_queue_name(prefix: str, kind: QueueKind, shard: int = 0) -> str:
    return f"{prefix}.{kind}.{shard:02d}"


def maintenance_route(settings: Settings) -> TemporalRoute:
    """Maintenance is a singleton workload and always lives on shard 00."""
    return TemporalRoute(
        namespace=settings.temporal_namespace,
        task_queue=task_queue_name(settings.temporal_queue_prefix, QueueKind.MAINTENANCE),
    )
