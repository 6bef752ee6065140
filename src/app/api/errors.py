"""Translation of service exceptions into HTTP errors."""

from typing import Any

from fastapi import HTTPException, status

from src.app.services.exceptions import (
    AdmissionRejectedError,
    ExecutionNotFoundError,
    InvalidExecutionTokenError,
    JobStateError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)

DomainError = (
    AdmissionRejectedError,
    ExecutionNotFoundError,
    InvalidExecutionTokenError,
    JobStateError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)


def error_detail(
    message: str, code: str | None = None, usage: dict[str, int] | None = None
) -> str | dict[str, Any]:
    """Plain message, or ``{message, code, usage?}`` when the error carries a code."""
    if code is None:
        return message
    detail: dict[str, Any] = {"message": message, "code": code}
    if usage is not None:
        detail["usage"] = usage
    return detail


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a service exception to the HTTPException the API responds with."""
    if isinstance(exc, WorkflowNotFoundError | ExecutionNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_detail(exc.message, exc.code),
        )
    if isinstance(exc, WorkflowValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_detail(exc.message, exc.code),
        )
    if isinstance(exc, InvalidExecutionTokenError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_detail(exc.message, exc.code),
        )
    if isinstance(exc, AdmissionRejectedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=error_detail(
                exc.message, exc.code, exc.usage.as_dict() if exc.usage else None
            ),
        )
    if isinstance(exc, JobStateError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT if exc.conflict else status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        )
    raise TypeError(f"Unmapped exception type: {type(exc).__name__}")
