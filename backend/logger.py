"""Structured logging configuration for the Flipbook Viewer."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed via `extra=` land directly on the record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """
    Set up root logging.

    Args:
        log_level: Level name (DEBUG, INFO, ...)
        log_format: "json" for one JSON object per line, anything else keeps
            the plain format installed by config.py
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))

    if log_format != "json":
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    # Replace the basicConfig handler so records aren't emitted twice
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
