"""JSON log output for the CLA service and CLI.

One JSON document per line on stdout. Context goes in ``extra={...}`` and is emitted
under ``"extra"``; records produced by pull request fan-out workers also carry the
worker's thread name so interleaved updates can be told apart.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import UTC, datetime
from typing import Any, TextIO

# Anything on a record beyond these came in through `extra=`.
_BUILTIN_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("github", "urllib3", "uvicorn.access")

_MAIN_THREAD = threading.main_thread().name


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        doc: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName and record.threadName != _MAIN_THREAD:
            doc["thread"] = record.threadName

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _BUILTIN_ATTRS and not key.startswith("_")
        }
        if context:
            doc["extra"] = context

        if record.exc_info:
            doc["exception"] = self.formatException(record.exc_info)

        # Values such as Paths or exceptions passed in `extra` are stringified.
        return json.dumps(doc, ensure_ascii=False, default=str)


def configure_logging(level: str, *, stream: TextIO | None = None) -> None:
    """Route all logging through a single JSON handler at ``level``.

    Safe to call repeatedly: previously installed root handlers are dropped first.
    HTTP client and access loggers never go below INFO.
    """

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    floor = max(root.level, logging.INFO)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(floor)
