"""
Logging setup for the Debug Attach Service.

Human-readable lines with ``key=value`` extras during development, one JSON
object per line when ``ENV=prod``. Per-connection context (request id, peer,
decoded request) travels as ``extra=`` fields, see ``core.error_handler``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from .settings import get_settings

settings = get_settings()

HUMAN_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Everything a LogRecord carries on its own; the rest came in through extra=
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "asctime",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)

# Libraries whose chatter is not useful below WARNING
_QUIET_LOGGERS = ("asyncio", "psutil")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; source location is added from WARNING up."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.levelno >= logging.WARNING:
            entry["source"] = self._source(record)
        if record.exc_info:
            entry["exception"] = self._exception(record)

        entry.update(_extra_fields(record))
        return json.dumps(entry, default=str)

    @staticmethod
    def _source(record: logging.LogRecord) -> dict[str, Any]:
        return {"file": record.pathname, "line": record.lineno, "function": record.funcName}

    def _exception(self, record: logging.LogRecord) -> dict[str, Any]:
        exc_type, exc_value, _ = record.exc_info  # type: ignore[misc]
        return {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "traceback": self.formatException(record.exc_info),  # type: ignore[arg-type]
        }


class HumanReadableFormatter(logging.Formatter):
    """Standard text line followed by ``| key=value`` for every extra field."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extra_fields(record)
        if not extras:
            return line
        return line + " | " + " | ".join(f"{key}={value}" for key, value in extras.items())


def setup_logging(level: str, use_json: bool = False, stream: IO[str] | None = None) -> None:
    """
    Replace the root handlers with a single console handler.

    Args:
        level: Logging level name, any case (DEBUG, info, ...)
        use_json: Emit JSON lines instead of human-readable text
        stream: Destination, stdout by default
    """
    formatter: logging.Formatter
    if use_json:
        formatter = StructuredFormatter()
    else:
        formatter = HumanReadableFormatter(fmt=HUMAN_FORMAT, datefmt=HUMAN_DATEFMT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


use_json_logging = settings.ENV.lower() == "prod"
setup_logging(settings.LOG_LEVEL, use_json=use_json_logging)

# Server and orchestrator
logger_service = logging.getLogger(settings.SERVICE_LOG_NAME)
# Process table scans
logger_locator = logging.getLogger("attach.locator")
# IDE launch, polling and keystrokes
logger_driver = logging.getLogger("attach.driver")
