"""
Structured logging for the DealMatch API.

Every log line carries the context bound for the current task:

    request_id   HTTP requests, bound by RequestContextMiddleware in dealmatch.main
    match_id     chat sockets, bound once the socket has joined a match channel
    user_id      chat sockets, the authenticated participant

Modules log through plain stdlib loggers and are rendered by structlog:
console output when APP_ENV=dev, JSON lines everywhere else.
"""

import logging
import sys
from typing import Optional
from uuid import UUID

import structlog

# Loggers that flood INFO with per-statement or per-request lines outside dev
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def configure_logging(app_env: str = "dev", level: str = "INFO") -> None:
    """
    Route stdlib and structlog loggers through one structured handler.

    Args:
        app_env: "dev" → ConsoleRenderer; anything else → JSONRenderer
        level: Root log level name, e.g. "DEBUG" to see channel fan-out
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = structlog.dev.ConsoleRenderer() if app_env == "dev" else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level.upper())

    if app_env != "dev":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(request_id: str) -> None:
    """Start a fresh log context for an HTTP request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)


def bind_socket_context(match_id: UUID, user_id: Optional[UUID] = None) -> None:
    """Tag the current socket task's log lines with its match and participant."""
    context = {"match_id": str(match_id)}
    if user_id is not None:
        context["user_id"] = str(user_id)
    structlog.contextvars.bind_contextvars(**context)
