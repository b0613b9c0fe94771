"""
Tests for SchedulerService.

An execution never raises. Failures of logging, metrics persistence and
performance checks are isolated; a publisher failure yields a zeroed
result with a single error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

import pytest

from post_scheduler.adapters.clock import FrozenClock
from post_scheduler.adapters.memory import InMemoryMetricsRepo, InMemoryPostRepo
from post_scheduler.components.publish import PostPublisher, PublishResult
from post_scheduler.components.scheduler import SchedulerService
from post_scheduler.core.entities import SchedulerMetrics
from post_scheduler.core.timefmt import is_utc_iso
from post_scheduler.shell.logging import StructuredLogger
from tests.factories import NOW, make_post

# --- Mock Implementations ---


@dataclass
class MockPublisher:
    """Returns a canned result, recording the time and correlation id it saw."""

    logger: StructuredLogger
    result: PublishResult = field(
        default_factory=lambda: PublishResult(success=True, published_count=0)
    )
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)
    correlation_ids: list[str | None] = field(default_factory=list)

    def publish_scheduled_posts(self, current_utc_time: str) -> PublishResult:
        self.calls.append(current_utc_time)
        self.correlation_ids.append(self.logger.correlation_id)
        if self.error is not None:
            raise self.error
        return self.result


class FailingMetricsRepo(InMemoryMetricsRepo):
    def save_metrics(self, metrics: SchedulerMetrics) -> bool:
        raise ConnectionError("metrics store unavailable")


class RejectingMetricsRepo(InMemoryMetricsRepo):
    def save_metrics(self, metrics: SchedulerMetrics) -> bool:
        return False


class FailingLogger(StructuredLogger):
    """Every scheduler event log call raises; correlation handling works."""

    def _scheduler_entry(self, *args, **kwargs):
        raise OSError("log sink closed")

    def warn(self, message, metadata=None):
        raise OSError("log sink closed")


class BrokenLogger(FailingLogger):
    """Even correlation handling raises."""

    def set_correlation_id(self, correlation_id: str) -> None:
        raise OSError("context unavailable")

    def clear_correlation_id(self) -> None:
        raise OSError("context unavailable")


@dataclass
class RecordingMonitor:
    checked: list[SchedulerMetrics] = field(default_factory=list)
    error: Exception | None = None

    def check_performance(self, metrics: SchedulerMetrics) -> list:
        self.checked.append(metrics)
        if self.error is not None:
            raise self.error
        return []


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def logger(clock: FrozenClock) -> StructuredLogger:
    return StructuredLogger("test.scheduler", clock=clock)


@pytest.fixture
def metrics_repo() -> InMemoryMetricsRepo:
    return InMemoryMetricsRepo()


def make_service(publisher, metrics_repo, logger, clock, monitor=None) -> SchedulerService:
    return SchedulerService(publisher, metrics_repo, logger, monitor=monitor, clock=clock)


class TestSuccessfulExecution:
    def test_result_and_metrics(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        publisher = MockPublisher(
            logger,
            PublishResult(success=True, published_count=2, post_ids=["a", "b"], processed_count=3),
        )
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.execution_id.startswith("exec_")
        assert result.posts_processed == 3
        assert result.posts_published == 2
        assert result.errors == []
        assert result.started_at == "2024-06-01T12:00:00.000Z"

        saved = metrics_repo.get_metrics(result.execution_id)
        assert saved is not None
        assert saved.posts_processed == 3
        assert saved.posts_published == 2
        assert saved.errors_encountered == 0

    def test_publisher_receives_canonical_utc_time(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        publisher = MockPublisher(logger)
        make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert len(publisher.calls) == 1
        assert is_utc_iso(publisher.calls[0])

    def test_correlation_id_set_during_and_cleared_after(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        publisher = MockPublisher(logger)
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert publisher.correlation_ids == [result.execution_id]
        assert logger.correlation_id is None

    def test_execution_ids_unique(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        service = make_service(MockPublisher(logger), metrics_repo, logger, clock)
        ids = {service.execute_scheduled_publishing().execution_id for _ in range(20)}
        assert len(ids) == 20
        assert len(metrics_repo.get_recent_metrics(50)) == 20

    def test_published_never_exceeds_processed(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        publisher = MockPublisher(
            logger, PublishResult(success=True, published_count=4, processed_count=0)
        )
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.posts_published <= result.posts_processed
        saved = metrics_repo.get_metrics(result.execution_id)
        assert saved is not None
        assert saved.posts_published <= saved.posts_processed

    def test_publish_errors_counted_in_metrics(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        publisher = MockPublisher(
            logger,
            PublishResult(
                success=True,
                published_count=1,
                processed_count=2,
                errors=["1 posts were skipped due to concurrent modifications"],
            ),
        )
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.errors == ["1 posts were skipped due to concurrent modifications"]
        saved = metrics_repo.get_metrics(result.execution_id)
        assert saved is not None
        assert saved.errors_encountered == 1

    def test_duration_measured_with_clock(
        self, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        clock = FrozenClock(NOW)

        class SlowPublisher(MockPublisher):
            def publish_scheduled_posts(self, current_utc_time: str) -> PublishResult:
                clock.advance(timedelta(milliseconds=1500))
                return super().publish_scheduled_posts(current_utc_time)

        result = make_service(
            SlowPublisher(logger), metrics_repo, logger, clock
        ).execute_scheduled_publishing()

        assert result.duration_ms == 1500
        assert result.completed_at == "2024-06-01T12:00:01.500Z"

    def test_monitor_receives_metrics(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        monitor = RecordingMonitor()
        result = make_service(
            MockPublisher(logger), metrics_repo, logger, clock, monitor
        ).execute_scheduled_publishing()

        assert [m.execution_id for m in monitor.checked] == [result.execution_id]

    def test_end_to_end_with_real_publisher(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        repo = InMemoryPostRepo([make_post(), make_post(), make_post(minutes_ago=-60)])
        publisher = PostPublisher(repo, clock=clock, sleep=lambda _: None)

        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.posts_processed == 2
        assert result.posts_published == 2
        assert sorted(p.status for p in repo.all()) == ["PUBLISHED", "PUBLISHED", "SCHEDULED"]


class TestFailureIsolation:
    def test_publisher_exception_gives_zeroed_result(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        publisher = MockPublisher(logger, error=RuntimeError("publisher exploded"))
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.posts_processed == 0
        assert result.posts_published == 0
        assert result.errors == ["publisher exploded"]
        saved = metrics_repo.get_metrics(result.execution_id)
        assert saved is not None
        assert saved.errors_encountered == 1
        assert logger.correlation_id is None

    def test_metrics_failure_does_not_change_result(
        self,
        clock: FrozenClock,
        logger: StructuredLogger,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        publisher = MockPublisher(
            logger, PublishResult(success=True, published_count=1, processed_count=1)
        )
        result = make_service(
            publisher, FailingMetricsRepo(), logger, clock
        ).execute_scheduled_publishing()

        assert result.posts_published == 1
        assert result.errors == []
        assert "save_metrics failed: metrics store unavailable" in capsys.readouterr().err

    def test_rejected_metrics_write_is_not_an_error(
        self, clock: FrozenClock, logger: StructuredLogger
    ) -> None:
        result = make_service(
            MockPublisher(logger), RejectingMetricsRepo(), logger, clock
        ).execute_scheduled_publishing()
        assert result.errors == []

    def test_logger_failure_does_not_change_result(
        self,
        clock: FrozenClock,
        metrics_repo: InMemoryMetricsRepo,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        logger = FailingLogger("test.failing", clock=clock)
        publisher = MockPublisher(
            logger, PublishResult(success=True, published_count=2, processed_count=2)
        )
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.posts_published == 2
        assert result.errors == []
        assert metrics_repo.get_metrics(result.execution_id) is not None
        assert logger.correlation_id is None
        assert "log_scheduler_start failed" in capsys.readouterr().err

    def test_broken_logger_on_error_path(
        self, clock: FrozenClock, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        logger = BrokenLogger("test.broken", clock=clock)
        publisher = MockPublisher(logger, error=RuntimeError("down"))
        result = make_service(publisher, metrics_repo, logger, clock).execute_scheduled_publishing()

        assert result.errors == ["down"]
        assert result.posts_processed == 0

    def test_monitor_failure_isolated(
        self, clock: FrozenClock, logger: StructuredLogger, metrics_repo: InMemoryMetricsRepo
    ) -> None:
        monitor = RecordingMonitor(error=ValueError("bad threshold"))
        result = make_service(
            MockPublisher(logger), metrics_repo, logger, clock, monitor
        ).execute_scheduled_publishing()

        assert result.errors == []
        assert len(monitor.checked) == 1
