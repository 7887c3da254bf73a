"""
Logging setup for the offline posts data layer.

Components log through ``logging.getLogger(__name__)`` and attach context
through ``extra``:

- reducers: ``screen`` and, on the detail screen, ``post_id``
  (via StateLoggerAdapter)
- the HTTP remote source: ``endpoint``, ``status`` and ``elapsed_ms``
- the SQLite cache store: ``operation`` on storage failures

``configure_logging`` puts one stderr handler on the ``offline_posts``
logger that renders those fields as a text suffix or as JSON lines.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "offline_posts"

# Context fields rendered by both formatters, in output order
CONTEXT_FIELDS = ("screen", "post_id", "endpoint", "status", "elapsed_ms", "operation")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields set on a record, in CONTEXT_FIELDS order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class ContextTextFormatter(logging.Formatter):
    """Human-readable lines ending in ``[screen=post_list status=503]``."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = record_context(record)
        if context:
            pairs = " ".join(f"{name}={value}" for name, value in context.items())
            line = f"{line} [{pairs}]"
        return line


class JsonLinesFormatter(logging.Formatter):
    """One JSON object per record for log shippers.

    Keys: timestamp (UTC ISO 8601), level, logger, message, any context
    fields present, and exception when the record carries one.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: int = logging.WARNING, json_lines: bool = False) -> logging.Logger:
    """Send offline_posts records at ``level`` and above to stderr.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Threshold for the package logger
        json_lines: Emit JSON lines instead of text

    Returns:
        The package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonLinesFormatter() if json_lines else ContextTextFormatter())
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return package_logger


class StateLoggerAdapter(logging.LoggerAdapter):
    """Stamps a reducer's screen context onto every record it logs.

    Context passed per call in ``extra`` is kept; the reducer's own
    context wins on conflicting keys.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **(self.extra or {})}
        return msg, kwargs
