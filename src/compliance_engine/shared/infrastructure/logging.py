"""
Structured Logging
==================

JSON log lines for the background engine.

Every record carries the environment name; records emitted inside a sweep
or a resolution also carry its correlation id, so one run can be followed
across modules. Keys that look like credentials are redacted before the
line is written.

    from compliance_engine.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Sweep finished", extra={"checked": 42})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Union

from pythonjsonlogger import jsonlogger

_SENSITIVE_KEYS = ("password", "api_key", "secret", "authorization")
_CONTEXT_KEYS = ("correlation_id", "sweep_id", "tenant_id")

# Third-party loggers that flood INFO with per-job / per-query lines
_QUIET_LOGGERS = ("apscheduler", "sqlalchemy.engine", "httpx", "watchdog")

AnyLogger = Union[logging.Logger, logging.LoggerAdapter]


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for engine records.

    Adds:
    - ``timestamp`` (ISO 8601, UTC) when the format does not supply one
    - correlation, sweep and tenant ids passed through ``extra``
    - ``environment``
    """

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        for key in _CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_record[key] = value
        log_record["environment"] = getattr(record, "environment", self.environment)

        for key, value in list(log_record.items()):
            if isinstance(value, str) and any(s in key.lower() for s in _SENSITIVE_KEYS):
                log_record[key] = "***REDACTED***"


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Route all records to stdout as JSON. Called once by the worker lifespan.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR)
        environment: Stamped onto every record
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Adapter that keeps call-site ``extra`` and adds the bound context on top."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **self.extra}
        return msg, kwargs


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_context_logger(name: str, correlation_id: str | None = None) -> AnyLogger:
    """
    Logger bound to a correlation id (one sweep or one resolution).

    Without an id the plain module logger is returned.
    """
    logger = get_logger(name)
    if not correlation_id:
        return logger
    return ContextLoggerAdapter(logger, {"correlation_id": correlation_id})


@contextmanager
def log_latency(logger: AnyLogger, operation: str, **extra_context: Any) -> Iterator[None]:
    """
    Log how long the wrapped block took, with ``outcome`` ok or error.

    Usage:
        with log_latency(logger, "sla_sweep", source="timer"):
            await tracker.sweep()
    """
    started = time.perf_counter()
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        logger.info(
            f"{operation} finished",
            extra={
                "operation": operation,
                "outcome": outcome,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                **extra_context,
            },
        )
