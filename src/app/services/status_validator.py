"""Workflow status transition rules."""

from src.app.models import Workflow, WorkflowStatus
from src.app.services.exceptions import WorkflowValidationError

VALID_STATUSES = tuple(status.value for status in WorkflowStatus)

INVALID_STATUS_MESSAGE = f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}"
ARCHIVED_ACTIVATION_MESSAGE = "Cannot directly activate an archived workflow. Unarchive it first."
NO_NODES_MESSAGE = "Cannot activate workflow with no nodes"
NO_TRIGGER_MESSAGE = "Workflow must have at least one trigger node to be activated"


def parse_status(value: str | None) -> WorkflowStatus:
    """Parse a requested status.

    Raises:
        WorkflowValidationError: If the value is not a known status
    """
    try:
        return WorkflowStatus(value)
    except ValueError as e:
        raise WorkflowValidationError(INVALID_STATUS_MESSAGE) from e


def validate_transition(workflow: Workflow, target: WorkflowStatus) -> None:
    """Check that ``workflow`` may move to ``target``.

    Only activation has structural requirements. The archived check runs
    before the canvas checks so an archived workflow is refused even when its
    canvas would otherwise qualify.

    Raises:
        WorkflowValidationError: With the first rule that fails
    """
    if target != WorkflowStatus.ACTIVE:
        return

    if workflow.status == WorkflowStatus.ARCHIVED.value:
        raise WorkflowValidationError(ARCHIVED_ACTIVATION_MESSAGE)

    if not workflow.nodes:
        raise WorkflowValidationError(NO_NODES_MESSAGE)

    if not workflow.has_trigger_node:
        raise WorkflowValidationError(NO_TRIGGER_MESSAGE)
