"""
localdb_hosting.observability.logging

Structured logging configuration for the application host.

Responsibilities:
- Configure `structlog` on top of stdlib logging.
- Render JSON for log shipping or colored console output for interactive runs.
- Keep chatty third-party loggers (SQLAlchemy, aioodbc) out of the resource logs.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Literal

import structlog

LogFormat = Literal["json", "console"]

# Health probes open a connection every few seconds.
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aioodbc")


def configure_logging(*, service_name: str, level: str, fmt: LogFormat = "json") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=_processors(service_name, fmt),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _processors(service_name: str, fmt: LogFormat) -> list[Any]:
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service_name(service_name),
    ]
    if fmt == "console":
        # ConsoleRenderer formats exc_info itself.
        return [*shared, structlog.dev.ConsoleRenderer()]
    return [*shared, structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Per-resource loggers are built on top of `get_logger` in
# `localdb_hosting.hosting.notifications.ResourceLoggerService`.
