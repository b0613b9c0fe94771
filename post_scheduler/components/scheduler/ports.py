"""
Scheduler component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from post_scheduler.components.publish.models import PublishResult
from post_scheduler.core.entities import SchedulerMetrics


class PublisherPort(Protocol):
    """Runs one publishing pass."""

    def publish_scheduled_posts(self, current_utc_time: str) -> PublishResult:
        ...


class PerformanceCheckPort(Protocol):
    """Checks execution metrics against alert thresholds."""

    def check_performance(self, metrics: SchedulerMetrics) -> list[object]:
        ...
