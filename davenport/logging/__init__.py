"""Centralized logging for davenport.

Provides the structlog-backed Logger that implements LoggerProtocol and
the one-shot configure_logging() used by applications embedding the
client. Library components accept an optional injected logger and fall
back to the context logger.

Usage:
    from davenport.logging import configure_logging, get_component_logger

    # At application startup (once)
    configure_logging(level="INFO", json_output=True)

    # Component-bound logger
    logger = get_component_logger("Iterator")
    logger.info("iterator_closed", cause="end_of_stream")
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Dict, Generator, Optional

import structlog

from davenport.protocols import LoggerProtocol

if TYPE_CHECKING:
    from davenport.settings import Settings

# Module state
_CONFIGURED = False

_current_logger: ContextVar[Optional[LoggerProtocol]] = ContextVar(
    "current_logger",
    default=None
)


class Logger:
    """LoggerProtocol implementation backed by structlog."""

    def __init__(
        self,
        base_logger: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize logger.

        Args:
            base_logger: Underlying structlog logger (created if None)
            context: Bound context fields
        """
        self._logger = base_logger or structlog.get_logger("davenport")
        self._context = context or {}

        if self._context:
            self._logger = self._logger.bind(**self._context)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._logger.debug(msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._logger.info(msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._logger.warning(msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._logger.error(msg, **kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._logger.exception(msg, **kwargs)

    def bind(self, **kwargs: Any) -> "Logger":
        """Create child logger with additional context."""
        new_context = {**self._context, **kwargs}
        return Logger(
            base_logger=structlog.get_logger("davenport"),
            context=new_context,
        )


def configure_logging(
    level: str = "INFO",
    *,
    json_output: bool = True,
    force: bool = False,
) -> None:
    """Configure stdlib logging and structlog for davenport.

    Should be called ONCE at application startup; later calls are no-ops
    unless ``force`` is set.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON; if False, console format
        force: Reconfigure even if already configured
    """
    global _CONFIGURED

    if _CONFIGURED and not force:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stdout,
    )

    # Silence noisy libraries
    for noisy in ["httpx", "httpcore"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    http_level = os.environ.get("DAVENPORT_HTTP_LOG_LEVEL", "").upper()
    if http_level:
        logging.getLogger("httpx").setLevel(getattr(logging, http_level, logging.WARNING))

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    if json_output:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def configure_from_settings(settings: "Settings") -> None:
    """Configure logging from davenport Settings."""
    configure_logging(level=settings.log_level, json_output=settings.log_json)


def create_logger(component: str, **context: Any) -> LoggerProtocol:
    """Create a logger for dependency injection.

    Args:
        component: Component name (e.g., "Client", "couchdb_driver")
        **context: Additional context to bind
    """
    return Logger(context={"component": component, **context})


def get_current_logger() -> LoggerProtocol:
    """Get the context-bound logger, or a default one."""
    logger = _current_logger.get()
    if logger is None:
        return Logger()
    return logger


def get_component_logger(
    component: str,
    logger: Optional[LoggerProtocol] = None,
) -> LoggerProtocol:
    """Get a logger bound to a component name.

    This is the canonical way to initialize a logger in library classes.

    Args:
        component: Component name (e.g., "Iterator", "MemoryDriver")
        logger: Optional injected logger. If None, uses context logger.
    """
    base_logger = logger or get_current_logger()
    return base_logger.bind(component=component)


@contextmanager
def logger_scope(logger: LoggerProtocol) -> Generator[LoggerProtocol, None, None]:
    """Make ``logger`` the current logger for the duration of the block."""
    token = _current_logger.set(logger)
    try:
        yield logger
    finally:
        _current_logger.reset(token)


__all__ = [
    "Logger",
    "configure_logging",
    "configure_from_settings",
    "create_logger",
    "get_current_logger",
    "get_component_logger",
    "logger_scope",
]
