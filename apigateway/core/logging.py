"""Logging for outbound provider calls.

Every gateway module logs through ``get_logger(__name__)`` and attaches the
call it is working on with ``extra=get_log_context(...)``. The call fields
(provider, method, endpoint, status, timing, retry attempt) are rendered
as a trailing ``[key=value ...]`` block in text output, or as a nested
``"call"`` object in JSON output.

Only the ``apigateway`` and ``httpx`` loggers are configured; the host
application's root logger is left alone.
"""

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from apigateway.core.config import settings

# Order is the order they are rendered in
CALL_FIELDS = (
    "request_id",
    "provider",
    "method",
    "endpoint",
    "status_code",
    "duration_ms",
    "attempt",
)

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_configured = False


def call_context(record: logging.LogRecord) -> Dict[str, Any]:
    """The call fields set on a record, skipping unset ones."""
    context = {}
    for field in CALL_FIELDS:
        value = getattr(record, field, None)
        if value is None:
            continue
        # Retry attempts are 0-indexed internally, 1-indexed for readers
        context[field] = value + 1 if field == "attempt" else value
    return context


class ContextFilter(logging.Filter):
    """Give every record all call fields, defaulting to None."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CALL_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


class CallFormatter(logging.Formatter):
    """Plain text with the call context appended.

    "2025-01-01 12:00:00 WARNING apigateway.providers.retry Retry 1/3 ... [provider=unsplash attempt=1]"
    """

    def __init__(self, datefmt: Optional[str] = None):
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt=datefmt or "%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = call_context(record)
        if not context:
            return line
        tail = " ".join(f"{key}={value}" for key, value in context.items())
        first, newline, rest = line.partition("\n")
        return f"{first} [{tail}]{newline}{rest}"


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``ts`` (UTC ISO 8601), ``level``, ``logger``, ``msg``, ``call``
    (present when any call field is set), ``extra`` (any other ``extra=``
    attribute) and ``exc`` (formatted traceback).
    """

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        context = call_context(record)
        if context:
            data["call"] = context

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in CALL_FIELDS
        }
        if extra:
            data["extra"] = extra

        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str, ensure_ascii=False)


def get_logging_config(
    level: Optional[str] = None, log_format: Optional[str] = None
) -> Dict[str, Any]:
    """Build a dictConfig for the gateway loggers.

    Args:
        level: Log level (defaults to settings.log_level)
        log_format: "text" or "json" (defaults to settings.log_format)

    Returns:
        Configuration dict for logging.config.dictConfig
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "call": {"()": "apigateway.core.logging.ContextFilter"},
        },
        "formatters": {
            "text": {"()": "apigateway.core.logging.CallFormatter"},
            "json": {"()": "apigateway.core.logging.JSONFormatter"},
        },
        "handlers": {
            "gateway": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "json" if log_format == "json" else "text",
                "filters": ["call"],
            },
        },
        "loggers": {
            "apigateway": {"level": level, "handlers": ["gateway"], "propagate": False},
            # Request lines from httpx duplicate the gateway's own call logs
            "httpx": {"level": "WARNING", "handlers": ["gateway"], "propagate": False},
        },
    }


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    force: bool = False,
) -> bool:
    """Configure the gateway loggers once per process.

    Args:
        level: Log level override
        log_format: Output format override ("text" or "json")
        force: Reconfigure even if already configured

    Returns:
        True if configuration was applied by this call
    """
    global _configured
    if _configured and not force:
        return False
    logging.config.dictConfig(get_logging_config(level, log_format))
    _configured = True
    return True


def get_logger(name: str = "apigateway") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    provider: Optional[str] = None,
    method: Optional[str] = None,
    endpoint: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for a log call, dropping None values.

    Example:
        >>> logger.info("Call succeeded", extra=get_log_context(provider="unsplash", status_code=200))
    """
    context = {
        "provider": provider,
        "method": method,
        "endpoint": endpoint,
        "request_id": request_id,
        **extra,
    }
    return {key: value for key, value in context.items() if value is not None}
