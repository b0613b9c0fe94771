"""
Retry with capped exponential backoff for storage operations.

Key behaviors:
- One initial attempt plus up to max_retries retries
- Delay before retry n (0-based) is min(base_delay_ms * 2**n, max_delay_ms)
- Exhausting every attempt raises RetryExhaustedError carrying the last error
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from post_scheduler.core.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000


DEFAULT_POLICY = RetryPolicy()


def calculate_backoff_ms(attempt: int, policy: RetryPolicy = DEFAULT_POLICY) -> int:
    """
    Delay before the retry that follows `attempt` (0-based).

    Capped at policy.max_delay_ms.
    """
    attempt = max(0, attempt)
    return min(policy.base_delay_ms * (2**attempt), policy.max_delay_ms)


def retry_with_backoff(
    operation: Callable[[], T],
    operation_name: str,
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: SleepFn = time.sleep,
) -> T:
    """
    Run operation, retrying failures with exponential backoff.

    Args:
        operation: Zero-argument callable to run
        operation_name: Used in log lines and the final error
        policy: Retry configuration
        sleep: Sleep function taking seconds (injectable for tests)

    Raises:
        RetryExhaustedError: if every attempt failed
    """
    total_attempts = policy.max_retries + 1
    last_error: Exception | None = None

    for attempt in range(total_attempts):
        try:
            return operation()
        except Exception as e:
            last_error = e

            if attempt == policy.max_retries:
                break

            delay_ms = calculate_backoff_ms(attempt, policy)
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %dms...",
                operation_name,
                attempt + 1,
                total_attempts,
                e,
                delay_ms,
            )
            sleep(delay_ms / 1000.0)

    raise RetryExhaustedError(operation_name, total_attempts, last_error)
