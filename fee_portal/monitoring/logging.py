"""
Structured logging configuration.

structlog renders each event as one JSON line; python-json-logger formats
records coming from third-party libraries through the stdlib root logger.
Request-scoped fields (request id, method, path) arrive via contextvars.
"""
import logging
import sys
from typing import Any, Callable, Optional, TextIO

import structlog
from pythonjsonlogger import jsonlogger

from fee_portal.config import Settings, get_settings

# Library loggers and the minimum level they may emit at.
LIBRARY_LOG_LEVELS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "stripe": logging.INFO,
}

STDLIB_RECORD_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def app_context_processor(settings: Settings) -> Callable[..., dict[str, Any]]:
    """Build a processor stamping app name and environment on every event."""

    def add_app_context(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.setdefault("app_name", settings.app_name)
        event_dict.setdefault("app_env", settings.app_env)
        return event_dict

    return add_app_context


def _processors(settings: Settings) -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        app_context_processor(settings),
        structlog.processors.JSONRenderer(ensure_ascii=False),
    ]


def _json_handler(stream: TextIO) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            STDLIB_RECORD_FORMAT,
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        )
    )
    return handler


def setup_logging(settings: Optional[Settings] = None, stream: TextIO = sys.stdout) -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; existing root handlers are replaced.
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_json_handler(stream))
    root_logger.setLevel(settings.log_level)

    for name, level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
    )
