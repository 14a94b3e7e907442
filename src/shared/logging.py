"""Storefront logging: stdlib handlers underneath, structlog on top.

``configure_logging`` is called once by ``create_app``. Modules only ever call
``get_logger(__name__)``; request-scoped fields (method, path, caller) are
bound through contextvars and merged into every event.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

ENVIRONMENT_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

JSON_ENVIRONMENTS = {"production", "staging"}

# Bytes per log file before rotation, and rotated files kept
ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_KEEP = 5


def _environment(environment: str | None = None) -> str:
    return (environment or os.getenv("ENVIRONMENT") or os.getenv("ENV") or "development").lower()


def get_log_level(environment: str | None = None) -> str:
    """``LOG_LEVEL`` if set, else the level mapped to the environment."""
    return os.getenv("LOG_LEVEL", ENVIRONMENT_LEVELS.get(_environment(environment), "INFO")).upper()


def _rotating_handler(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=ROTATE_BYTES,
        backupCount=ROTATE_KEEP,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(level: str, log_dir: Path | None = None) -> None:
    """Route everything through the root logger: stdout, plus files under ``log_dir``."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_handler(log_dir / "storefront.log", level))
        handlers.append(_rotating_handler(log_dir / "storefront_error.log", logging.ERROR))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = handlers
    handlers[0].setLevel(level)

    # SQL echo and event-loop chatter stay quiet unless something breaks
    for noisy in ("sqlalchemy.engine", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _renderer(environment: str):
    if environment in JSON_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=True, max_frames=2),
    )


def setup_structlog(environment: str) -> None:
    callsite = structlog.processors.CallsiteParameterAdder(
        parameters=[
            structlog.processors.CallsiteParameter.MODULE,
            structlog.processors.CallsiteParameter.FUNC_NAME,
            structlog.processors.CallsiteParameter.LINENO,
        ]
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            callsite,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(environment),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(environment: str | None = None, log_dir: Path | None = None) -> None:
    environment = _environment(environment)
    setup_stdlib_logging(get_log_level(environment), log_dir)
    setup_structlog(environment)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    """Bind fields to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
