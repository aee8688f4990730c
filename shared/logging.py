"""Structured JSON logging for the council engine."""
import logging
import json
import sys
from datetime import datetime, timezone
from enum import Enum


class StructuredFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
        'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'getMessage', 'taskName',
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith('_'):
                log_data[key] = value.value if isinstance(value, Enum) else value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def setup_logging(service_name: str, level: int = logging.INFO) -> logging.Logger:
    """Attach the JSON handler to the root logger and return the service logger.

    Modules log through ``logging.getLogger(__name__)``, so the handler lives on
    the root logger rather than on the service logger alone.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger(service_name)
