"""
Structured logging for the telemetry pipeline.

structlog renders to the console while developing and to JSON in
production. Events logged while a request is being handled carry its
request and session identifiers, and traces timed by the trace collector
pick up the same identifiers as metadata.
"""

import logging
import logging.config
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config.settings import Settings, get_settings

request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
session_id_context: ContextVar[Optional[str]] = ContextVar("session_id", default=None)

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def current_request_context() -> Dict[str, str]:
    """Request and session ids of the request being handled, if any."""
    context = {}
    request_id = request_id_context.get()
    if request_id:
        context["request_id"] = request_id
    session_id = session_id_context.get()
    if session_id:
        context["session_id"] = session_id
    return context


def add_request_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor merging the current request context into an event."""
    for key, value in current_request_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def set_request_context(request_id: Optional[str] = None,
                        session_id: Optional[str] = None) -> None:
    """Mark the current task as handling ``request_id`` for ``session_id``."""
    if request_id:
        request_id_context.set(request_id)
    if session_id:
        session_id_context.set(session_id)


def _processors(environment: str) -> List[Any]:
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        add_request_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if environment == "production":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=environment == "development"),
        ]
    return processors


def _stdlib_config(level: str, json_output: bool, log_file: Optional[Path]) -> Dict[str, Any]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json" if json_output else "plain",
            "stream": sys.stdout,
        }
    }
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "filename": str(log_file),
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
            "plain": {"format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s"},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
    }


def setup_logging(log_level: str = "INFO",
                  environment: str = "development",
                  log_file: Optional[Path] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        environment: development, staging, production or testing; production
            logs JSON
        log_file: Optional path of a rotating JSON log file
    """
    level = log_level.upper()

    structlog.configure(
        processors=_processors(environment),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(_stdlib_config(level, environment == "production", log_file))


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Set up logging from host settings (``TELEMETRY_*`` environment by default)."""
    settings = settings or get_settings()

    setup_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        log_file=settings.log_file,
    )


__all__ = [
    "setup_logging",
    "configure_logging",
    "current_request_context",
    "set_request_context",
    "request_id_context",
    "session_id_context",
]
