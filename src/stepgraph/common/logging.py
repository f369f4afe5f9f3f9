"""Structured logging for the traversal engine using structlog.

JSON lines for production, coloured key/value output for terminals.
Log lines always go to stderr so command output on stdout stays clean.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from stepgraph.common.config import Settings, get_settings


def service_context(settings: Settings) -> Processor:
    """Build a processor stamping every entry with the service identity."""
    identity = {
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def add_identity(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in identity.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_identity


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Application settings. Uses global settings if not provided.
    """
    settings = settings or get_settings()
    options = settings.logging

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]
    if options.include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))
    if options.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ))
    processors.append(service_context(settings))

    if options.format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, options.level),
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


class LoggerMixin:
    """Gives a class a ``logger`` named after the class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger


@contextmanager
def log_context(**context: Any) -> Iterator[None]:
    """Bind context to every log entry emitted inside the block.

    Bindings live in contextvars, so each asyncio task sees only its own.

    Example:
        with log_context(search_id="abc123", mode="loops"):
            logger.info("Search started")
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
