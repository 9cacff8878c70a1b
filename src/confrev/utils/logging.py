"""Structured logging configuration.

Records may carry domain identifiers through ``extra=``; the JSON
formatter lifts the known ones into top-level keys so that every
transition of a paper can be traced by ``paper_id``.
"""

import logging
import json
import sys
from typing import Any, Dict

from ..config.settings import settings

# Keys copied from ``extra=`` into the JSON payload.
CONTEXT_FIELDS = (
    "conference_id",
    "paper_id",
    "review_id",
    "user_id",
    "status",
    "version",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = str(value)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger configured from ``settings``."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if settings.log_format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
