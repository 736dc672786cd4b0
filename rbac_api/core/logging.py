"""JSON logging for the RBAC integration API."""
from __future__ import annotations

import logging
from typing import Optional

from pythonjsonlogger import jsonlogger

from rbac_api.context import current_correlation_id

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s"

# Chatty libraries stay at WARNING unless the app itself runs at DEBUG.
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration", "httpx")


class CorrelationIdFilter(logging.Filter):
    """Attach the active request correlation id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = current_correlation_id()
        return True


def setup_logging(level: str = "INFO") -> None:
    """Route every record through one JSON handler on the root logger.

    Safe to call repeatedly: handlers installed by a previous call (or by
    uvicorn's default config) are replaced, not stacked.
    """

    level = level.upper()
    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level == "DEBUG" else "WARNING")


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.upper())
    return logger


__all__ = ["CorrelationIdFilter", "get_logger", "setup_logging"]
