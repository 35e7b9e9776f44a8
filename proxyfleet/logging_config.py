"""Structured JSON logging configuration.

Every entry carries request_id, level and timestamp. Fleet-specific fields
are attached through ``extra`` on the log call: proxy_name, group_name and
provider_name identify the subject of an operation; duration_ms and
error_reason describe its outcome.

SECURITY: the controller secret and bearer tokens are redacted.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone


_SENSITIVE_PATTERNS = re.compile(
    r"(controller.secret|secret|token|authorization)[\s]*[=:]\s*(?:bearer\s+)?\S+"
    r"|bearer\s+\S+",
    re.IGNORECASE,
)

_CONTEXT_FIELDS = (
    "proxy_name",
    "group_name",
    "provider_name",
    "test_url",
    "duration_ms",
    "generation",
)


class JsonFormatter(logging.Formatter):
    """Formats log records as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._sanitize(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }

        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)

        if hasattr(record, "error_reason"):
            entry["error_reason"] = self._sanitize(
                str(getattr(record, "error_reason"))
            )

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self._sanitize(
                self.formatException(record.exc_info)
            )

        return json.dumps(entry, default=str)

    @staticmethod
    def _sanitize(text: str) -> str:
        return _SENSITIVE_PATTERNS.sub("[REDACTED]", text)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with JSON formatting.

    Parameters
    ----------
    level:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
