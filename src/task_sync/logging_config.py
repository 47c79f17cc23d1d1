"""Logging setup for the JIRA task sync package.

Every module logs event-style messages (``jira_request_failed``,
``record_staged``) with an ``extra`` dict. The formatters here carry those
extras into the output, JSON by default or ``key=value`` text for local runs,
with credentials masked at any nesting depth.

Environment Variables:
    TASK_SYNC_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default: INFO)
    TASK_SYNC_LOG_FORMAT: json or text (default: json)
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

LOGGER_NAMESPACE = "task_sync"
REDACTED = "[REDACTED]"

SENSITIVE_KEYS = {
    "password", "token", "secret", "apikey", "api_key", "api_token",
    "authorization", "credential", "auth", "bearer",
}
_SENSITIVE_SUFFIXES = ("_token", "_secret", "_password")

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered in SENSITIVE_KEYS or lowered.endswith(_SENSITIVE_SUFFIXES)


def redact(value: Any) -> Any:
    """Copy of ``value`` with sensitive dict keys masked, recursing into containers."""
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and _is_sensitive(k) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Redacted ``extra`` fields attached to a log record."""
    extras = {
        k: v
        for k, v in vars(record).items()
        if k not in _RECORD_ATTRS and not k.startswith("_")
    }
    return redact(extras)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp (UTC, ``Z`` suffix), level, logger, message, and, when
    present, context (the redacted extras) and exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = record_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Exceptions and Paths in extras are written as their str()
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line output with the extras appended as key=value."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in context.items())
        head, sep, tail = line.partition("\n")
        return f"{head} {pairs}{sep}{tail}"


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.strip().lower() == "text":
        return TextFormatter()
    return StructuredFormatter()


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Attach a single stream handler to the ``task_sync`` logger.

    Safe to call once per sync run: the handler is reused and only its
    level and formatter change. Child loggers (``task_sync.jira.client``,
    ``task_sync.driver``) inherit the level.

    Args:
        level: Level name; falls back to TASK_SYNC_LOG_LEVEL, then INFO.
            Unknown names mean INFO.
        log_format: ``json`` or ``text``; falls back to TASK_SYNC_LOG_FORMAT,
            then json.
    """
    level = level or os.getenv("TASK_SYNC_LOG_LEVEL", "INFO")
    log_format = log_format or os.getenv("TASK_SYNC_LOG_FORMAT", "json")

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler())
    formatter = _build_formatter(log_format)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    logger.propagate = False
