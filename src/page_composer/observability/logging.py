"""JSON-lines logging for the page composer.

Engine and editor code log through `get_logger(__name__)` and attach
page-scoped fields with `extra=page_context(page_id, ...)`. Those fields
are flattened into the top level of each JSON line.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO


# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RECORD_ATTRS:
            continue
        if key == "extra_fields" and isinstance(value, dict):
            fields.update(value)
        else:
            fields[key] = value
    return fields


class JsonFormatter(logging.Formatter):
    """Renders each record as a single JSON object.

    Values that JSON cannot encode (datetimes, enums, ...) are written with
    `str()`.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None):
    """Routes the root logger to one JSON handler.

    Args:
        level: Log level name; falls back to LOG_LEVEL, then INFO.
        stream: Where lines are written. Defaults to stdout.
    """
    root = logging.getLogger()
    root.setLevel((level or os.environ.get("LOG_LEVEL") or "INFO").upper())

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def page_context(page_id: str, **fields: Any) -> dict[str, Any]:
    """Builds the `extra` mapping for a page-scoped log line.

    Args:
        page_id: The page the log line is about.
        **fields: Additional structured fields (version, index, ...).

    Returns:
        A dict suitable for the `extra` argument of logger calls.
    """
    return {"extra_fields": {"page_id": page_id, **fields}}
