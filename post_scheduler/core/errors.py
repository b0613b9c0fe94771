"""
Exception types raised across the scheduler core.

Hierarchy:
    Exception
    +-- SchedulerBaseError
        +-- InvalidDateTimeError (also ValueError)
        +-- RetryExhaustedError
        +-- ConfigurationError

Validation problems at the CRUD boundary are reported as error records on
component outputs, not raised (see components.posts.models).
"""

from __future__ import annotations


class SchedulerBaseError(Exception):
    """Base exception for scheduler errors."""


class InvalidDateTimeError(SchedulerBaseError, ValueError):
    """Raised when a datetime string cannot be parsed."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid datetime format: {value!r}")


class RetryExhaustedError(SchedulerBaseError):
    """Raised when a retried storage operation fails on every attempt."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException | None) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        last = str(last_error) if last_error is not None else "unknown"
        super().__init__(f"{operation} failed after {attempts} attempts. Last error: {last}")


class ConfigurationError(SchedulerBaseError):
    """Raised when configuration is invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Configuration validation failed: {', '.join(errors)}")
