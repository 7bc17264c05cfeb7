"""Structured logging scoped to identity lookups.

Every passwd/group hook call runs inside ``lookup_scope``, which gives it
a fresh correlation ID and records the lookup name (e.g. "passwd.uid").
A filter copies both onto each log record, so all lines emitted while
resolving one request, including token refreshes, can be grouped.

Logs always go to stderr; stdout carries getent-style CLI output.
"""

import contextvars
import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)
lookup_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("lookup", default=None)

# Record attributes copied into JSON log entries when present
EXTRA_FIELDS = (
    "lookup",
    "realm",
    "username",
    "uid",
    "gid",
    "group",
    "grant_type",
    "has_refresh_token",
    "status_code",
    "attribute",
    "count",
    "config",
)

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"

# Third-party loggers that would log request URLs at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


@contextmanager
def lookup_scope(lookup: str) -> Iterator[str]:
    """Run a block as one lookup.

    Args:
        lookup: Lookup name attached to every record logged in the block

    Yields:
        The correlation ID of the lookup
    """
    correlation_id = str(uuid.uuid4())
    correlation_token = correlation_id_var.set(correlation_id)
    lookup_token = lookup_var.set(lookup)
    try:
        yield correlation_id
    finally:
        lookup_var.reset(lookup_token)
        correlation_id_var.reset(correlation_token)


class LookupContextFilter(logging.Filter):
    """Adds the current correlation ID and lookup name to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or NO_CORRELATION_ID  # type: ignore
        lookup = lookup_var.get()
        if lookup is not None and not hasattr(record, "lookup"):
            record.lookup = lookup  # type: ignore
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
        }
        log_entry.update(
            {name: getattr(record, name) for name in EXTRA_FIELDS if hasattr(record, name)}
        )

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def _configure_handler(
    handler: logging.Handler, formatter: logging.Formatter, level: str
) -> logging.Handler:
    handler.setLevel(level)
    handler.addFilter(LookupContextFilter())
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
) -> None:
    """Configure logging for the resolver.

    Replaces any handlers on the root logger with a stderr handler and,
    if ``log_file`` is given, a JSON file handler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether stderr output is JSON (otherwise TEXT_FORMAT)
        log_file: Optional file path for JSON file logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if json_format:
        console_formatter: logging.Formatter = JSONFormatter()
    else:
        console_formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    root_logger.addHandler(
        _configure_handler(logging.StreamHandler(sys.stderr), console_formatter, level)
    )

    if log_file:
        root_logger.addHandler(
            _configure_handler(logging.FileHandler(log_file), JSONFormatter(), level)
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = [
    "correlation_id_var",
    "lookup_var",
    "lookup_scope",
    "LookupContextFilter",
    "JSONFormatter",
    "setup_logging",
]
