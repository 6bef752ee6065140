"""Domain exceptions raised by services and translated to HTTP errors by routes."""

from dataclasses import dataclass


class WorkflowNotFoundError(Exception):
    """Workflow does not exist in the organization (or is not publicly available)."""

    def __init__(self, message: str = "Workflow not found", code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ExecutionNotFoundError(Exception):
    """Execution or its queue entry does not exist."""

    def __init__(self, message: str = "Execution not found", code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class WorkflowValidationError(Exception):
    """Request is well-formed but violates a workflow rule."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class UsageSnapshot:
    """Plan usage after an attempted increment. ``limit`` of -1 means unlimited."""

    current: int
    limit: int

    @property
    def remaining(self) -> int:
        if self.limit < 0:
            return -1
        return max(0, self.limit - self.current)

    def as_dict(self) -> dict[str, int]:
        return {"current": self.current, "limit": self.limit, "remaining": self.remaining}


class AdmissionRejectedError(Exception):
    """Execution or activation refused by queue depth or plan limits."""

    def __init__(self, message: str, code: str, usage: UsageSnapshot | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.usage = usage


class InvalidExecutionTokenError(Exception):
    """Public execution token missing or does not match the stored hash."""

    def __init__(self, message: str = "Invalid execution token"):
        super().__init__(message)
        self.message = message
        self.code = "INVALID_TOKEN"


class JobStateError(Exception):
    """Queue entry or execution is not in a state that allows the operation.

    ``conflict`` marks reports against finished executions (409) as opposed
    to invalid manual actions (400).
    """

    def __init__(self, message: str, conflict: bool = False):
        super().__init__(message)
        self.message = message
        self.conflict = conflict
