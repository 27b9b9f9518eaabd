"""Structured logging for HealthHub: structlog events routed through stdlib handlers.

Every event carries the service name and version, the logger name and any
request-scoped context bound by the request ID middleware. Console output
is human-readable in debug mode; the rotating log file is always JSON.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

import structlog

SERVICE_NAME = "healthhub"
LOG_FILE_NAME = "healthhub.log"

# Chatty third-party loggers capped at WARNING outside debug mode
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "uvicorn.access")


def _service_context(service: str, version: Optional[str]):
    def add_service(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        if version:
            event_dict.setdefault("version", version)
        return event_dict

    return add_service


def _formatter(renderers, pre_chain) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def setup_logging(
    debug: bool = False,
    log_dir: str = "logs",
    log_max_bytes: int = 10_000_000,
    log_backup_count: int = 5,
    service: str = SERVICE_NAME,
    version: Optional[str] = None,
) -> None:
    """Configure structlog and the root logger.

    Logs go to stdout always and to ``<log_dir>/healthhub.log`` when the
    directory is writable. Records from other libraries pass through the
    same processors, so they share the JSON shape.
    """
    log_level = logging.DEBUG if debug else logging.INFO

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_context(service, version),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    stdout_renderers = [structlog.dev.ConsoleRenderer()] if debug else json_renderers

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Reconfiguring replaces handlers instead of stacking them
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(_formatter(stdout_renderers, shared_processors))
    root_logger.addHandler(stdout_handler)

    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE_NAME),
            maxBytes=log_max_bytes,
            backupCount=log_backup_count,
            encoding="utf-8",
        )
    except OSError:
        # Unwritable log dir: stdout only
        file_handler = None
    if file_handler is not None:
        file_handler.setLevel(log_level)
        file_handler.setFormatter(_formatter(json_renderers, shared_processors))
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(log_level if debug else logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
