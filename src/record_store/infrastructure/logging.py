"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from record_store.infrastructure.config import ObservabilityConfig


def _add_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Tag every event with the emitting service."""
    event_dict.setdefault("service", "record_store")
    return event_dict


def setup_logging(
    level: str | None = None,
    log_format: str | None = None,
    observability: ObservabilityConfig | None = None,
) -> None:
    """
    Set up structured logging with structlog.

    Explicit arguments win over the observability config, which in turn
    falls back to its own defaults.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        observability: Observability section of the record store config
    """
    observability = observability or ObservabilityConfig()
    level = (level or observability.log_level).upper()
    log_format = log_format or observability.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name (module name typically)
        **initial_context: Context bound to every event, e.g. collection=...

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
