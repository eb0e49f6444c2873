"""structlog setup and the context binders used across API, pipeline and billing."""

import logging
import sys
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

# Event keys whose values never reach the log stream
REDACTED_KEYS = frozenset(
    {"private_key", "signature", "token", "admin_token", "authorization", "api_key"}
)
REDACTED = "[redacted]"

_NOISY_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "temporalio": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.typing.EventDict
) -> structlog.typing.EventDict:
    """Mask signing keys, upload signatures and bearer tokens."""
    for key in REDACTED_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _processors(debug: bool) -> list[structlog.typing.Processor]:
    renderer: structlog.typing.Processor = (
        structlog.dev.ConsoleRenderer(colors=True)
        if debug
        else structlog.processors.JSONRenderer()
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def setup_logging(debug: bool = False) -> None:
    """Configure structlog for the API process and the Temporal worker.

    Debug mode renders colored console lines; otherwise one JSON object
    per line is written to stdout.
    """
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

    for name, level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None) -> None:
    """Bind the correlation ID to all subsequent log calls."""
    if request_id:
        bind_contextvars(request_id=request_id)


def bind_identity_context(identity_key: str) -> None:
    bind_contextvars(identity_key=identity_key)


def bind_project_context(project_id: str, deployment_id: str | None = None) -> None:
    """Bind project (and optionally deployment) identifiers to log calls.

    Used by the pipeline coordinator and the billing tick so every line
    emitted while working on a project can be correlated.
    """
    bind_contextvars(project_id=project_id)
    if deployment_id:
        bind_contextvars(deployment_id=deployment_id)


def clear_request_context() -> None:
    clear_contextvars()
