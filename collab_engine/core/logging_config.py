"""
Logging configuration.

Provides JSON-formatted logging to stderr. Modules obtain their logger with
`logging.getLogger(__name__)`; `setup_logging()` is called once when the
application starts.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from collab_engine.core.config import LOG_LEVEL


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Structured context passed with `extra={"data": {...}}`
        if hasattr(record, "data"):
            log_entry["data"] = record.data

        if record.exc_info:
            log_entry["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
                "message": str(record.exc_info[1]) if record.exc_info[1] else "",
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = LOG_LEVEL) -> None:
    """
    Configure the root logger with a single JSON stderr handler.

    Calling it again replaces the handler instead of stacking a new one.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_collab_engine", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter())
    handler._collab_engine = True
    root.addHandler(handler)
    root.setLevel(level.upper())
