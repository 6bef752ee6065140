"""Temporal Workflows - Re-exports for worker registration."""

from src.app.temporal.workflows.queue_maintenance import (
    QueueMaintenanceInput,
    QueueMaintenanceWorkflow,
)

__all__ = [
    "QueueMaintenanceInput",
    "QueueMaintenanceWorkflow",
]
