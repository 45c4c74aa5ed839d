"""
Structured logging configuration.

Two formatters share one set of context fields:

- request context, attached by the timing middleware
  (method, path, status, duration_ms, remote_addr, request_id)
- bug context, attached by the lifecycle engine on every mutation
  (bug_id, user_id)

Development and testing log a single readable line per record with the
bug context appended; production emits one JSON object per record.
LOG_LEVEL overrides the level in every environment.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
BUG_FIELDS = ("bug_id", "user_id")


def context_fields(record: logging.LogRecord) -> dict:
    """Context attributes set on *record* via ``extra=``, skipping unset ones."""
    found = {}
    for key in REQUEST_FIELDS + BUG_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            found[key] = value
    return found


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(context_fields(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        fields = context_fields(record)
        tags = [f"{key}={fields[key]}" for key in BUG_FIELDS if key in fields]
        if "duration_ms" in fields:
            tags.append(f"{fields['duration_ms']:.0f}ms")
        if tags:
            line += " [" + " ".join(tags) + "]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _level_for(app) -> tuple[str, int]:
    default = "DEBUG" if app.debug or app.testing else "INFO"
    name = os.getenv("LOG_LEVEL", default).upper()
    return name, getattr(logging, name, logging.INFO)


def configure_logging(app):
    """Install one stderr handler on the root logger for *app*.

    Repeated calls (one app per test) replace the handler instead of
    stacking another one.
    """
    production = not (app.debug or app.testing)
    level_name, level = _level_for(app)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for chatty in ("werkzeug", "sqlalchemy.engine", "urllib3"):
        logging.getLogger(chatty).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if production else "readable")
