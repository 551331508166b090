"""Logging helpers for the tether monitor.

Every record is rendered as a single JSON line so the router's syslog (or
``logread``) output stays machine-parseable. Keys passed through ``extra=``
land under ``"extra"``.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from logging import Handler
from logging.config import dictConfig
from logging.handlers import SysLogHandler
from pathlib import Path
from typing import Any

import msgspec

from .model import RuntimeConfig

SYSLOG_SOCKET = Path("/dev/log")
SYSLOG_SOCKET_FALLBACK = Path("/var/run/log")
SYSLOG_IDENT = "tethermon "
LOG_STREAM_ENV = "TETHERMON_LOG_STREAM"

# httpx logs every request at INFO; one push per cycle does not need that.
QUIET_LOGGERS = ("httpx", "httpcore")

# Attributes every LogRecord carries; anything else came from ``extra=``.
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_encoder = msgspec.json.Encoder()


def _to_json_safe(value: Any) -> Any:
    match value:
        case None | bool() | int() | float() | str():
            return value
        case bytes():
            return value.decode("utf-8", errors="replace")
        case list() | tuple() | set() | frozenset():
            return [_to_json_safe(item) for item in value]
        case dict():
            return {str(key): _to_json_safe(item) for key, item in value.items()}
        case _:
            return str(value)


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record, logger names relative to the package."""

    PREFIX = "tethermon."

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name.removeprefix(self.PREFIX),
            "message": record.getMessage(),
        }

        extra = {
            key: _to_json_safe(value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return _encoder.encode(payload).decode("utf-8")


def _build_handler() -> Handler:
    """Syslog when a socket is present, stderr otherwise or when forced."""
    if os.environ.get(LOG_STREAM_ENV):
        return logging.StreamHandler()

    socket_path = next((path for path in (SYSLOG_SOCKET, SYSLOG_SOCKET_FALLBACK) if path.exists()), None)
    if socket_path is None:
        return logging.StreamHandler()

    handler = SysLogHandler(address=str(socket_path), facility=SysLogHandler.LOG_DAEMON)
    handler.ident = SYSLOG_IDENT
    return handler


def configure_logging(config: RuntimeConfig) -> None:
    level_name = "DEBUG" if config.debug_logging else "INFO"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "tethermon.config.logging.StructuredLogFormatter"},
            },
            "handlers": {
                "main": {
                    "()": _build_handler,
                    "level": level_name,
                    "formatter": "json",
                },
            },
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {"level": level_name, "handlers": ["main"]},
        }
    )

    logging.getLogger("tethermon").info("Logging configured at level %s", level_name)
