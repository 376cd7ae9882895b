"""
Logging setup for the booking engine.

Everything goes through ``logging.config.dictConfig``. Records are tagged with
the id of the HTTP request (or Celery task) that produced them, and check-in
tokens, bank details and email addresses are masked before any handler sees
them.
"""

import contextvars
import json
import logging
import logging.config
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

BUSINESS_LOGGER = "event_management_platform.business"
SECURITY_LOGGER = "event_management_platform.security"

MASK = "***"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json_logging: bool = False,
) -> None:
    """
    Configure the platform loggers.

    Args:
        log_level: level for the platform's own loggers
        log_file: when set, records are also written to a rotating file
        enable_json_logging: emit one JSON object per line instead of text
    """
    handler_filters = ["request_id", "mask"]
    formatter = "json" if enable_json_logging else "text"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": formatter,
            "filters": handler_filters,
        }
    }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": formatter,
            "filters": handler_filters,
        }

    def platform_logger(level: str) -> Dict[str, Any]:
        return {"level": level, "handlers": list(handlers), "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {
                    "format": "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
                "json": {"()": JSONFormatter},
            },
            "filters": {
                "request_id": {"()": RequestIDFilter},
                "mask": {"()": SensitiveDataFilter},
            },
            "handlers": handlers,
            "loggers": {
                "event_management_platform": platform_logger(log_level),
                # business and security trails stay on even when the app runs at WARNING
                BUSINESS_LOGGER: platform_logger("INFO"),
                SECURITY_LOGGER: platform_logger("INFO"),
                "uvicorn.error": platform_logger("INFO"),
                "uvicorn.access": platform_logger("WARNING"),
                "sqlalchemy.engine": platform_logger("WARNING"),
                "celery": platform_logger("INFO"),
            },
            "root": {"level": "WARNING", "handlers": list(handlers)},
        }
    )


class RequestIDFilter(logging.Filter):
    """Stamp every record with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask secrets in record attributes and email addresses in messages."""

    SENSITIVE_KEYS = frozenset(
        {"authorization", "token", "access_token", "check_in_token", "bank_details", "secret_key"}
    )
    EMAIL = re.compile(r"\b[\w.%+-]+@[\w-]+(?:\.[\w-]+)+\b")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.EMAIL.sub(MASK, record.msg)
        for key, value in list(record.__dict__.items()):
            if key in self.SENSITIVE_KEYS and value is not None:
                setattr(record, key, MASK)
            elif isinstance(value, dict):
                setattr(record, key, self._mask(value))
        return True

    def _mask(self, value):
        if isinstance(value, dict):
            return {
                key: MASK if str(key).lower() in self.SENSITIVE_KEYS else self._mask(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self._mask(item) for item in value)
        if isinstance(value, str):
            return self.EMAIL.sub(MASK, value)
        return value


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "request_id"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields nested under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "message": record.getMessage(),
        }
        context = {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS}
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def log_business_event(event_type: str, details: Dict[str, Any], user_id: Optional[str] = None) -> None:
    """Record a booking, promotion, loyalty or payout fact on the business trail."""
    logging.getLogger(BUSINESS_LOGGER).info(
        "%s", event_type, extra={"event_type": event_type, "user_id": user_id, **details}
    )


def log_security_event(event_type: str, details: Dict[str, Any], severity: str = "WARNING") -> None:
    """Record a moderation or role change on the security trail."""
    logging.getLogger(SECURITY_LOGGER).log(
        logging.getLevelName(severity.upper()), "%s", event_type, extra={"event_type": event_type, **details}
    )
