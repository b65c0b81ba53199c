"""Pulse — Structured JSON Logging.

Log lines carry report context (customer, month, ad account) as top-level
JSON keys so a month's run can be filtered per customer.
"""

import logging
import json
import sys
import time
from datetime import datetime, timezone
from typing import Any, MutableMapping, Tuple
from app.config import settings

EXTRA_FIELDS = ("customer", "month", "account_id", "duration_ms", "status_code")


class JSONFormatter(logging.Formatter):
    """Produces structured JSON log lines for production observability."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        # Attach report context if present
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger with fixed context fields; per-call `extra` is merged on top."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> logging.Logger:
    """Return a named logger with structured JSON handler."""
    logger = logging.getLogger(f"pulse.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger


def bind(logger: logging.Logger, **context: Any) -> ContextAdapter:
    """e.g. bind(logger, customer="acme", month="2025-12")."""
    return ContextAdapter(logger, {k: v for k, v in context.items() if k in EXTRA_FIELDS})


def elapsed_ms(started: float) -> float:
    """Milliseconds since a time.perf_counter() reading, for duration_ms."""
    return round((time.perf_counter() - started) * 1000, 1)
