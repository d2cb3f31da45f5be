"""
Disposal Logging - structured logging via structlog.

Library modules only ever call :func:`get_logger`. The output format comes
from :func:`configure_logging`, called by the application at startup, or
from the service's settings when the application never configured structlog.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True)
            │
            ▼
        structlog processor chain:
          1. merge_contextvars
          2. add_log_level
          3. TimeStamper (iso)
          4. JSONRenderer or ConsoleRenderer

Examples:
    >>> from disposal.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.info("handle_registered", handle_id="3f2a9c1e")

Guardrails:
    - Never log from a weakref callback: it may run inside the collector
      on any thread, including one that already holds a logging lock.
    - Loggers are module-level proxies, so they are not cached; a later
      ``configure_logging`` call still reaches them.

Tags:
    logging, structlog, observability, disposal

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from .settings import DisposalSettings


def configure_logging(level: str = "INFO", json_format: bool | None = None) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def configure_from_settings(settings: DisposalSettings) -> None:
    """Apply the ``log_level`` / ``log_format`` fields of *settings*."""
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


def ensure_configured(settings: DisposalSettings) -> bool:
    """Apply *settings* unless structlog was already configured.

    Returns:
        True if this call configured structlog
    """
    if structlog.is_configured():
        return False
    configure_from_settings(settings)
    return True


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is bound as ``logger_name``; ``logger`` is reserved by structlog.
    """
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs of this thread."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "ensure_configured",
    "get_logger",
    "bind_context",
    "clear_context",
]
