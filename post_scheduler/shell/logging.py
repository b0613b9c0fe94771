"""
Structured logging for scheduler executions.

StructuredLogger wraps a stdlib logger. Every call builds a log entry dict
({level, message, timestamp, correlation_id?, metadata?}), emits it as one
JSON line and returns it so callers and tests can inspect what was logged.

The correlation id lives in a ContextVar: concurrent executions running in
different threads or tasks each see their own id.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Literal

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.timefmt import format_utc_iso

LogLevel = Literal["debug", "info", "warn", "error"]
SchedulerPhase = Literal["start", "processing", "complete", "error"]

_STDLIB_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class JsonLogFormatter(logging.Formatter):
    """Formats records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = getattr(record, "entry", None)
        if entry is None:
            entry = {
                "level": record.levelname.lower(),
                "message": record.getMessage(),
                "timestamp": format_utc_iso(datetime.fromtimestamp(record.created, UTC)),
                "logger": record.name,
            }
            correlation_id = _correlation_id.get()
            if correlation_id:
                entry["correlation_id"] = correlation_id
            if record.exc_info:
                entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "info", structured: bool = True) -> None:
    """Configure the root logger (called once by the entry points)."""
    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(
        level=_STDLIB_LEVELS.get(level.lower(), logging.INFO),
        handlers=[handler],
        force=True,
    )


class StructuredLogger:
    """
    Logger for scheduler and security events.

    Constructed explicitly and injected; there is no module-level instance.
    """

    def __init__(
        self,
        name: str = "post_scheduler",
        clock: ClockPort | None = None,
        enable_correlation_ids: bool = True,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._clock = clock or SystemClock()
        self._enable_correlation_ids = enable_correlation_ids

    # --- Correlation ---

    @property
    def correlation_id(self) -> str | None:
        return _correlation_id.get()

    def set_correlation_id(self, correlation_id: str) -> None:
        if self._enable_correlation_ids:
            _correlation_id.set(correlation_id)

    def clear_correlation_id(self) -> None:
        _correlation_id.set(None)

    # --- Core ---

    def _entry(
        self,
        level: LogLevel,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "level": level,
            "message": message,
            "timestamp": format_utc_iso(self._clock.now_utc()),
        }
        correlation_id = _correlation_id.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        if metadata:
            entry["metadata"] = metadata
        return entry

    def _emit(self, entry: dict[str, Any]) -> dict[str, Any]:
        self._logger.log(_STDLIB_LEVELS[entry["level"]], entry["message"], extra={"entry": entry})
        return entry

    def info(self, message: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._emit(self._entry("info", message, metadata))

    def warn(self, message: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._emit(self._entry("warn", message, metadata))

    def error(self, message: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._emit(self._entry("error", message, metadata))

    def debug(self, message: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._emit(self._entry("debug", message, metadata))

    # --- Scheduler events ---

    def _scheduler_entry(
        self,
        level: LogLevel,
        message: str,
        execution_id: str,
        phase: SchedulerPhase,
        **fields: Any,
    ) -> dict[str, Any]:
        entry = self._entry(level, message)
        entry["execution_id"] = execution_id
        entry["phase"] = phase
        entry.update({k: v for k, v in fields.items() if v is not None})
        return self._emit(entry)

    def log_scheduler_start(self, execution_id: str) -> dict[str, Any]:
        return self._scheduler_entry(
            "info", "Scheduler execution started", execution_id, "start"
        )

    def log_scheduler_processing(
        self,
        execution_id: str,
        posts_processed: int,
        posts_published: int,
    ) -> dict[str, Any]:
        return self._scheduler_entry(
            "info",
            f"Scheduler processing: {posts_processed} posts processed, "
            f"{posts_published} published",
            execution_id,
            "processing",
            posts_processed=posts_processed,
            posts_published=posts_published,
        )

    def log_scheduler_complete(
        self,
        execution_id: str,
        posts_processed: int,
        posts_published: int,
        duration_ms: int,
        errors: list[str] | None = None,
    ) -> dict[str, Any]:
        errors = errors or []
        return self._scheduler_entry(
            "warn" if errors else "info",
            f"Scheduler execution completed in {duration_ms}ms",
            execution_id,
            "complete",
            posts_processed=posts_processed,
            posts_published=posts_published,
            duration_ms=duration_ms,
            errors=errors or None,
        )

    def log_scheduler_error(
        self,
        execution_id: str,
        error: str,
        duration_ms: int | None = None,
    ) -> dict[str, Any]:
        return self._scheduler_entry(
            "error",
            f"Scheduler execution failed: {error}",
            execution_id,
            "error",
            duration_ms=duration_ms,
            errors=[error],
        )

    # --- Security events ---

    def log_security_violation(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self.error(
            f"SECURITY VIOLATION: {message}",
            {**(metadata or {}), "security_event": True},
        )
