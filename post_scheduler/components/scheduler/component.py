"""
Scheduler component - one scheduled-publishing execution per trigger.

Invariants:
- execute_scheduled_publishing never raises
- Logging, metrics persistence and performance checks are isolated: a
  failure in any of them is reported on stderr and the execution goes on
- The publisher call itself is not isolated; its failure takes the error
  path and produces a zeroed result with one error
- posts_published <= posts_processed in every result and metrics record
"""

from __future__ import annotations

from uuid import uuid4

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.components.scheduler.models import SchedulerResult
from post_scheduler.components.scheduler.ports import PerformanceCheckPort, PublisherPort
from post_scheduler.core.entities import SchedulerMetrics
from post_scheduler.core.ports.repo import MetricsRepoPort
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.timefmt import format_utc_iso
from post_scheduler.shell.isolation import best_effort
from post_scheduler.shell.logging import StructuredLogger


def new_execution_id() -> str:
    return f"exec_{uuid4().hex}"


class SchedulerService:
    """Orchestrates a publishing pass with logging and metrics."""

    def __init__(
        self,
        publisher: PublisherPort,
        metrics_repo: MetricsRepoPort,
        logger: StructuredLogger,
        monitor: PerformanceCheckPort | None = None,
        clock: ClockPort | None = None,
    ) -> None:
        self._publisher = publisher
        self._metrics_repo = metrics_repo
        self._logger = logger
        self._monitor = monitor
        self._clock = clock or SystemClock()

    def _elapsed_ms(self, started_ms: float) -> int:
        return max(0, int(round(self._clock.monotonic_ms() - started_ms)))

    def _save_metrics(self, metrics: SchedulerMetrics) -> None:
        saved = best_effort(self._metrics_repo.save_metrics, metrics, label="save_metrics")
        if saved is False:
            best_effort(
                self._logger.warn,
                "Scheduler metrics were not persisted",
                {"execution_id": metrics.execution_id},
                label="log_warn",
            )

    def execute_scheduled_publishing(self) -> SchedulerResult:
        """
        Run one scheduler execution.

        Returns:
            SchedulerResult. On failure of the publish pass the result has
            zero counts and a single error message.
        """
        execution_id = new_execution_id()
        started_at = format_utc_iso(self._clock.now_utc())
        started_ms = self._clock.monotonic_ms()

        best_effort(self._logger.set_correlation_id, execution_id, label="set_correlation_id")
        best_effort(self._logger.log_scheduler_start, execution_id, label="log_scheduler_start")

        try:
            result = self._publisher.publish_scheduled_posts(started_at)

            posts_processed = max(result.processed_count, result.published_count)
            posts_published = result.published_count

            best_effort(
                self._logger.log_scheduler_processing,
                execution_id,
                posts_processed,
                posts_published,
                label="log_scheduler_processing",
            )

            completed_at = format_utc_iso(self._clock.now_utc())
            duration_ms = self._elapsed_ms(started_ms)

            metrics = SchedulerMetrics(
                execution_id=execution_id,
                started_at=started_at,
                completed_at=completed_at,
                posts_processed=posts_processed,
                posts_published=posts_published,
                errors_encountered=len(result.errors),
                execution_duration_ms=duration_ms,
            )
            self._save_metrics(metrics)

            if self._monitor is not None:
                best_effort(self._monitor.check_performance, metrics, label="check_performance")

            best_effort(
                self._logger.log_scheduler_complete,
                execution_id,
                posts_processed,
                posts_published,
                duration_ms,
                list(result.errors),
                label="log_scheduler_complete",
            )

            return SchedulerResult(
                execution_id=execution_id,
                started_at=started_at,
                completed_at=completed_at,
                posts_processed=posts_processed,
                posts_published=posts_published,
                errors=list(result.errors),
                duration_ms=duration_ms,
            )

        except Exception as e:
            message = str(e) or type(e).__name__
            completed_at = format_utc_iso(self._clock.now_utc())
            duration_ms = self._elapsed_ms(started_ms)

            best_effort(
                self._logger.log_scheduler_error,
                execution_id,
                message,
                duration_ms,
                label="log_scheduler_error",
            )
            self._save_metrics(
                SchedulerMetrics(
                    execution_id=execution_id,
                    started_at=started_at,
                    completed_at=completed_at,
                    posts_processed=0,
                    posts_published=0,
                    errors_encountered=1,
                    execution_duration_ms=duration_ms,
                )
            )

            return SchedulerResult(
                execution_id=execution_id,
                started_at=started_at,
                completed_at=completed_at,
                posts_processed=0,
                posts_published=0,
                errors=[message],
                duration_ms=duration_ms,
            )

        finally:
            best_effort(self._logger.clear_correlation_id, label="clear_correlation_id")
