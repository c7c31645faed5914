"""Logging configuration: readable console output, optional JSON lines."""

import json
import logging
from datetime import datetime, timezone

from branch_ledger.config import Settings

LOGGER_NAME = "branch_ledger"


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    # Standard LogRecord attributes that should not be treated as extra fields
    _STANDARD_ATTRS = {
        "name", "msg", "args", "created", "filename", "funcName", "levelname",
        "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
        "processName", "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Fields passed via logger.info(..., extra={...})
        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


def setup_logging(config: Settings) -> logging.Logger:
    """Configure the package logger from settings.

    Args:
        config: Application settings (LOG_LEVEL, LOG_JSON, DEBUG)

    Returns:
        The configured ``branch_ledger`` logger
    """
    root_logger = logging.getLogger(LOGGER_NAME)
    root_logger.setLevel(config.LOG_LEVEL.upper())

    # Remove existing handlers to avoid duplicates on reload
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if config.LOG_JSON:
        handler.setFormatter(JSONFormatter())
    elif config.DEBUG:
        handler.setFormatter(logging.Formatter(
            fmt="[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s",
            datefmt="%H:%M:%S",
        ))
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root_logger.addHandler(handler)
    root_logger.propagate = False

    root_logger.info(
        "Logging initialized",
        extra={"log_level": config.LOG_LEVEL, "json": config.LOG_JSON},
    )
    return root_logger
