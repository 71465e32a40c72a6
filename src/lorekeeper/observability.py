"""Structured logging and the retrieval observer sink."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Protocol

import structlog


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "lorekeeper",
) -> None:
    """Setup structured logging configuration."""

    # stdout carries the MCP stdio transport
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
    )


class RetrievalObserver(Protocol):
    """Sink for retrieval events, injected into the engine."""

    def emit(self, event: str, level: str = "info", **fields: Any) -> None:
        ...


class NullObserver:
    """Observer that discards every event."""

    def emit(self, event: str, level: str = "info", **fields: Any) -> None:
        pass


class StructlogObserver:
    """Observer that forwards events to a structlog logger."""

    def __init__(self, name: str = "lorekeeper.retrieval"):
        self.logger = structlog.get_logger(name)

    def emit(self, event: str, level: str = "info", **fields: Any) -> None:
        log = getattr(self.logger, level, self.logger.info)
        log(event, **fields)
