"""Structured logging with per-run correlation."""

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional, TextIO

import structlog

# Context variable carrying the id of the current masking run
run_id: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="")

LOG_FORMATS = ("text", "json")


def add_run_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add the current run id to log events."""
    current = run_id.get()
    if current:
        event_dict["run_id"] = current
    return event_dict


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    stream: Optional[TextIO] = None,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Library modules log with ``logging.getLogger(__name__)``; their records
    are rendered by the same processor chain as structlog loggers.

    Args:
        level: Log level name
        fmt: ``text`` for console output or ``json`` for one object per line
        stream: Destination stream (stderr by default)
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Log format must be one of {LOG_FORMATS}, got '{fmt}'")

    shared_processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_run_id,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if fmt == "json":
        renderers: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


@contextmanager
def run_context(current_run_id: Optional[str] = None) -> Generator[str, None, None]:
    """Bind a run id for every log event emitted inside the block."""
    if current_run_id is None:
        current_run_id = uuid.uuid4().hex[:12]

    token = run_id.set(current_run_id)
    try:
        yield current_run_id
    finally:
        run_id.reset(token)
