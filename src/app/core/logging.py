"""structlog setup and the request-scoped context bound into every log line."""

import logging
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

# Third-party loggers that are too chatty at INFO
_LIBRARY_LEVELS = {
    "sqlalchemy.engine": logging.WARNING,
    "asyncpg": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "temporalio": logging.INFO,
}


def _processors(debug: bool) -> list[structlog.typing.Processor]:
    renderer: structlog.typing.Processor = (
        structlog.dev.ConsoleRenderer(colors=True) if debug else structlog.processors.JSONRenderer()
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def setup_logging(debug: bool = False) -> None:
    """Console output when ``debug`` is set, one JSON object per line otherwise."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )
    structlog.configure(
        processors=_processors(debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None, method: str, path: str, surface: str) -> None:
    """Tag the rest of the request's log lines with where it came in.

    ``surface`` is the API surface of ``path``: api, public, internal or other.
    """
    context = {"http_method": method, "path": path, "surface": surface}
    if request_id:
        context["request_id"] = request_id
    bind_contextvars(**context)


def bind_user_context(user_id: UUID, email: str | None = None) -> None:
    """Bind the authenticated user. The email is only logged when LOG_USER_EMAILS is on."""
    from src.app.core.config import get_settings

    bind_contextvars(user_id=str(user_id))
    if email and get_settings().log_user_emails:
        bind_contextvars(user_email=email)


def bind_organization_context(organization_id: str) -> None:
    bind_contextvars(organization_id=organization_id)


def bind_worker_context(worker_id: str) -> None:
    """Bind the executor instance calling the job queue."""
    bind_contextvars(worker_id=worker_id)


def clear_request_context() -> None:
    clear_contextvars()
