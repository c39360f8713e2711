"""
Structured logging using structlog with:
- JSON/console switchable format
- Correlation ID + request context
- Credential redaction (bearer tokens, LINE channel access tokens)
- Safe defaults for Uvicorn/SQLAlchemy/httpx
- Tiny helpers for FastAPI middleware and perf timing
"""

from __future__ import annotations

import contextlib
import datetime
import logging
import logging.config
import re
import sys
import time
import uuid
from typing import Any, Dict, Iterable, Optional

import structlog
from pythonjsonlogger import jsonlogger

from src.shared.config import get_settings

# ---------------------------------------------------------------------
# Credential redaction
# ---------------------------------------------------------------------


class CredentialRedactionProcessor:
    """
    Structlog processor that scrubs credentials from event_dict (recursively).
    - Values under sensitive keys (access_token, authorization, ...): full redact.
    - "Bearer <token>" fragments inside strings: token redacted.
    """
    SENSITIVE_KEYS = frozenset({
        "access_token",
        "access_token_encrypted",
        "authorization",
        "channel_access_token",
        "secret_key",
        "token",
    })
    P_BEARER = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+")

    def __call__(self, logger, method_name, event_dict):
        return self._redact(event_dict)

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                k: ("***REDACTED***" if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v))
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            return self.P_BEARER.sub("Bearer ***REDACTED***", value)
        return value


# ---------------------------------------------------------------------
# Context processors
# ---------------------------------------------------------------------


class CorrelationIdProcessor:
    """Attach correlation_id from structlog contextvars into each event."""
    def __call__(self, logger, method_name, event_dict):
        cid = structlog.contextvars.get_contextvars().get("correlation_id")
        if cid:
            event_dict["correlation_id"] = cid
        return event_dict


def add_request_context(logger, method_name, event_dict):
    """
    Copy a few standard request fields from contextvars into the event.
    Bind more via `bind_request_context(...)` during request handling.
    """
    ctx = structlog.contextvars.get_contextvars()
    for key in ("user_id", "job_id", "path", "method", "status_code", "client_ip"):
        if key in ctx:
            event_dict[key] = ctx[key]
    return event_dict


def add_timestamp(logger, method_name, event_dict):
    event_dict["timestamp"] = datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")
    return event_dict


def _passthrough(logger, method_name, event_dict):
    return event_dict


# ---------------------------------------------------------------------
# Public helpers to use from API/worker code
# ---------------------------------------------------------------------


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Generate/bind a correlation_id if not provided; returns the id."""
    cid = correlation_id or str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(correlation_id=cid)
    return cid


def bind_request_context(
    *,
    path: Optional[str] = None,
    method: Optional[str] = None,
    status_code: Optional[int] = None,
    user_id: Optional[str] = None,
    job_id: Optional[str] = None,
    client_ip: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Bind standard request context fields (call in middleware/route handlers)."""
    payload = {
        k: v
        for k, v in dict(
            path=path,
            method=method,
            status_code=status_code,
            user_id=user_id,
            job_id=job_id,
            client_ip=client_ip,
        ).items()
        if v is not None
    }
    if extras:
        payload.update(extras)
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_request_context() -> None:
    """Clear all bound contextvars (call at end of request/worker job)."""
    structlog.contextvars.clear_contextvars()


@contextlib.contextmanager
def time_block(name: str, *, logger: Optional[structlog.stdlib.BoundLogger] = None, labels: Optional[Dict[str, str]] = None):
    """
    Context manager to time a block and log as a performance metric.
    Usage:
        with time_block("line.create_rich_menu", logger=log):
            await gateway.create_rich_menu(...)
    """
    _log = logger or structlog.get_logger("performance")
    t0 = time.perf_counter()
    try:
        yield
    finally:
        ms = (time.perf_counter() - t0) * 1000.0
        _log.info("Performance metric", metric_name=name, value=ms, unit="ms", labels=labels or {})


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------

def _ensure_log_format(settings) -> str:
    """
    Determine output format:
      - settings.log_format if set ("json"|"console").
      - Else "console" for local/dev, "json" for staging/prod.
    """
    if settings.log_format in ("json", "console"):
        return settings.log_format
    return "console" if settings.is_local or settings.is_dev else "json"


def _level_name_to_int(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging() -> None:
    """Idempotent structured logging configuration."""
    settings = get_settings()
    log_format = _ensure_log_format(settings)
    is_prod_like = settings.is_prod or settings.is_staging

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "console": {
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if log_format == "json" else "console",
                "stream": sys.stdout,
            },
        },
        "root": {
            "level": _level_name_to_int(settings.log_level),
            "handlers": ["console"],
        },
        "loggers": {
            # Quiet noisy libs, but keep errors
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "sqlalchemy.engine": {
                "level": "WARNING" if is_prod_like else "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
            # httpx logs full request lines at INFO
            "httpx": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "alembic": {"level": "INFO", "handlers": ["console"], "propagate": False},
        },
    }
    logging.config.dictConfig(logging_config)

    processors: Iterable[Any] = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        add_request_context,
        CorrelationIdProcessor(),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        # Redact only outside of local/dev to help debugging locally
        (CredentialRedactionProcessor() if is_prod_like else _passthrough),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        (structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer()),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
