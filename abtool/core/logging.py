"""
Structured logging configuration for abtool.

abtool's own events are structlog key/value events routed through the stdlib
``logging`` tree, so they share one handler and one level with records from
third-party loggers (Prefect, asyncio). On a terminal the handler is a
RichHandler; otherwise each record is written to stderr as one JSON line.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Settings

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _drop_handler_fields(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    # RichHandler prints time and level in its own columns
    event_dict.pop("timestamp", None)
    event_dict.pop("level", None)
    return event_dict


def _build_handler(log_level: str) -> logging.Handler:
    if sys.stderr.isatty():
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=log_level == "DEBUG",
        )
        renderer: list[structlog.types.Processor] = [
            _drop_handler_fields,
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    else:
        handler = logging.StreamHandler(sys.stderr)
        renderer = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderer],
        )
    )
    return handler


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structured logging for the application.

    Replaces any handlers on the root logger, so calling it again (for
    example with a different level) reconfigures the single sink.

    Args:
        settings: Optional settings. If None, uses INFO level.
    """
    log_level = settings.log_level if settings else "INFO"
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=level,
        handlers=[_build_handler(log_level)],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured bound logger
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log entries in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
