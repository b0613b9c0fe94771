"""
Regression tests for the publishing invariants.

- Timezone round trip and invalid-zone totality
- Exactly-once publish under concurrent executions
- One conditional update per batch
- Error isolation in the scheduler service
- UTC-only timestamps on the publish path
- Auth gate correctness
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from post_scheduler.adapters.clock import FrozenClock, SystemClock
from post_scheduler.adapters.memory import InMemoryMetricsRepo, InMemoryPostRepo
from post_scheduler.adapters.sqlite import SQLitePostRepo
from post_scheduler.components.publish import PostPublisher, PublisherConfig, PublishResult
from post_scheduler.components.scheduler import SchedulerService
from post_scheduler.components.security import SecurityValidator
from post_scheduler.components.timezone import TimezoneService
from post_scheduler.core.timefmt import is_utc_iso, parse_iso, parse_utc_iso
from post_scheduler.domain.entities import Post
from post_scheduler.shell.logging import StructuredLogger
from tests.factories import NOW, make_post

VALID_ZONES = [
    "UTC",
    "America/New_York",
    "America/Los_Angeles",
    "America/Sao_Paulo",
    "Europe/London",
    "Europe/Berlin",
    "Asia/Kolkata",
    "Asia/Kathmandu",
    "Australia/Lord_Howe",
    "Pacific/Chatham",
]

MALFORMED_ZONES = ["", " ", "Nowhere", "America/", "/UTC", "Europe/Atlantis", "\x00", "a" * 300]


# --- Helpers ---


@dataclass
class CountingRepo:
    """Wraps a post repository and records every conditional update."""

    inner: SQLitePostRepo | InMemoryPostRepo
    mark_calls: list[tuple[int, int]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get_due_posts(self, before_utc: datetime) -> list[Post]:
        return self.inner.get_due_posts(before_utc)

    def mark_published(self, post_ids: list[str], published_at_utc: datetime) -> list[str]:
        confirmed = self.inner.mark_published(post_ids, published_at_utc)
        with self._lock:
            self.mark_calls.append((len(post_ids), len(confirmed)))
        return confirmed


def seed(repo, count: int) -> list[Post]:
    return [repo.create_post(make_post(minutes_ago=1 + i % 30)) for i in range(count)]


def run_concurrently(publishers: list[PostPublisher], now_iso: str) -> list[PublishResult]:
    barrier = threading.Barrier(len(publishers))
    results: list[PublishResult | None] = [None] * len(publishers)

    def worker(index: int) -> None:
        barrier.wait()
        results[index] = publishers[index].publish_scheduled_posts(now_iso)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(len(publishers))]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert all(r is not None for r in results)
    return results  # type: ignore[return-value]


@pytest.fixture(params=["sqlite", "memory"])
def post_repo(request, db_path):
    if request.param == "sqlite":
        return SQLitePostRepo(db_path)
    return InMemoryPostRepo()


# --- Timezone ---


class TestTimezoneInvariants:
    @pytest.mark.parametrize("zone", VALID_ZONES)
    def test_round_trip_reproduces_wall_clock(self, zone: str) -> None:
        tz = TimezoneService()
        for local in [
            "2024-01-15T09:30:00",
            "2024-04-01T00:00:00",
            "2024-06-30T23:59:59",
            "2024-10-15T12:15:30",
        ]:
            back = tz.convert_from_utc(tz.convert_to_utc(local, zone), zone)
            delta = parse_iso(back).replace(tzinfo=None) - parse_iso(local)
            assert abs(delta.total_seconds()) < 1

    @pytest.mark.parametrize("zone", MALFORMED_ZONES)
    def test_malformed_zone_totality(self, zone: str) -> None:
        tz = TimezoneService()
        assert tz.validate_timezone(zone) is False
        for value in [
            tz.convert_to_utc("2024-03-10T02:30:00", zone),
            tz.convert_from_utc("2024-03-10T07:30:00.000Z", zone),
            tz.handle_dst_transition("2024-03-10T02:30:00", zone),
        ]:
            assert parse_utc_iso(value) == datetime(2024, 3, 10, 2, 30, tzinfo=UTC) or (
                parse_utc_iso(value) == datetime(2024, 3, 10, 7, 30, tzinfo=UTC)
            )


# --- Publishing ---


class TestExactlyOnce:
    @pytest.mark.parametrize("workers", [2, 4])
    def test_concurrent_executions_publish_each_post_once(self, post_repo, workers: int) -> None:
        posts = seed(post_repo, 120)
        repo = CountingRepo(post_repo)
        publishers = [
            PostPublisher(repo, PublisherConfig(max_batch_size=7), sleep=lambda _: None)
            for _ in range(workers)
        ]

        results = run_concurrently(publishers, "2024-06-01T12:00:00.000Z")

        all_ids = [pid for r in results for pid in r.post_ids]
        assert len(all_ids) == len(set(all_ids)) == len(posts)
        assert sum(r.published_count for r in results) == len(posts)
        assert sum(confirmed for _, confirmed in repo.mark_calls) == len(posts)
        assert all(post_repo.get_by_id(p.id).status == "PUBLISHED" for p in posts)
        assert all(r.success for r in results)

    def test_two_simultaneous_runs_example(self, post_repo) -> None:
        posts = [
            post_repo.create_post(
                make_post(scheduled_at=datetime(2024, 1, 1, hour, 0, tzinfo=UTC))
            )
            for hour in (10, 11, 12)
        ]
        publishers = [PostPublisher(post_repo, sleep=lambda _: None) for _ in range(2)]

        first, second = run_concurrently(publishers, "2024-01-01T15:00:00Z")

        assert first.published_count + second.published_count == 3
        assert not set(first.post_ids) & set(second.post_ids)
        assert all(post_repo.get_by_id(p.id).status == "PUBLISHED" for p in posts)

    def test_single_run_example(self, post_repo) -> None:
        posts = [
            post_repo.create_post(
                make_post(scheduled_at=datetime(2024, 1, 1, hour, 0, tzinfo=UTC))
            )
            for hour in (10, 11, 12)
        ]

        result = PostPublisher(post_repo, sleep=lambda _: None).publish_scheduled_posts(
            "2024-01-01T15:00:00Z"
        )

        assert result.success is True
        assert result.published_count == 3
        assert sorted(result.post_ids) == sorted(p.id for p in posts)
        assert result.errors == []
        for p in posts:
            stored = post_repo.get_by_id(p.id)
            assert stored.status == "PUBLISHED"
            assert stored.published_at == datetime(2024, 1, 1, 15, 0, tzinfo=UTC)


class TestBatchInvariant:
    @pytest.mark.parametrize(("count", "batch_size"), [(1, 50), (50, 50), (51, 50), (23, 4)])
    def test_one_conditional_update_per_batch(self, post_repo, count: int, batch_size: int) -> None:
        seed(post_repo, count)
        repo = CountingRepo(post_repo)

        result = PostPublisher(
            repo, PublisherConfig(max_batch_size=batch_size), sleep=lambda _: None
        ).publish_scheduled_posts("2024-06-01T12:00:00.000Z")

        assert len(repo.mark_calls) == math.ceil(count / batch_size)
        assert sum(confirmed for _, confirmed in repo.mark_calls) == result.published_count == count
        assert all(size <= batch_size for size, _ in repo.mark_calls)


# --- Scheduler service ---


class ExplodingPublisher:
    def publish_scheduled_posts(self, current_utc_time: str) -> PublishResult:
        raise RuntimeError("publisher down")


class ExplodingMetrics(InMemoryMetricsRepo):
    def save_metrics(self, metrics) -> bool:
        raise RuntimeError("metrics down")


class ExplodingLogger(StructuredLogger):
    def _emit(self, entry):
        raise RuntimeError("logger down")


class TestErrorIsolation:
    @pytest.mark.parametrize("failing", ["publisher", "metrics", "logger"])
    def test_execution_always_returns_and_clears_correlation(self, failing: str) -> None:
        clock = FrozenClock(NOW)
        logger = (
            ExplodingLogger("test.isolation", clock=clock)
            if failing == "logger"
            else StructuredLogger("test.isolation", clock=clock)
        )
        publisher = (
            ExplodingPublisher()
            if failing == "publisher"
            else PostPublisher(InMemoryPostRepo([make_post()]), clock=clock, sleep=lambda _: None)
        )
        metrics = ExplodingMetrics() if failing == "metrics" else InMemoryMetricsRepo()

        result = SchedulerService(publisher, metrics, logger, clock=clock).execute_scheduled_publishing()

        assert result.execution_id.startswith("exec_")
        assert result.posts_published <= result.posts_processed
        assert logger.correlation_id is None
        if failing == "publisher":
            assert result.errors == ["publisher down"]
        else:
            assert result.posts_published == 1


@pytest.fixture
def host_timezone(monkeypatch: pytest.MonkeyPatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset unavailable")
    monkeypatch.setenv("TZ", "Asia/Kolkata")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestUtcOnly:
    def test_publisher_receives_utc_under_non_utc_host(self, host_timezone) -> None:
        seen: list[str] = []

        class Capturing:
            def publish_scheduled_posts(self, current_utc_time: str) -> PublishResult:
                seen.append(current_utc_time)
                return PublishResult(success=True, published_count=0)

        before = datetime.now(UTC)
        SchedulerService(
            Capturing(), InMemoryMetricsRepo(), StructuredLogger("test.utc"), clock=SystemClock()
        ).execute_scheduled_publishing()
        after = datetime.now(UTC)

        assert len(seen) == 1
        assert is_utc_iso(seen[0])
        instant = parse_utc_iso(seen[0])
        assert before.replace(microsecond=before.microsecond // 1000 * 1000) <= instant <= after


# --- Auth gate ---


class TestAuthGate:
    SECRET = "the-secret"

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            (None, "missing_auth_header"),
            ("", "empty_auth_header"),
            ("Token the-secret", "wrong_auth_type"),
            ("Bearer ", "malformed_bearer_token"),
            ("Bearer the-secre", "invalid_secret"),
            ("Bearer the-secret-and-more", "invalid_secret"),
        ],
    )
    def test_only_exact_bearer_secret_passes(self, header: str | None, expected: str) -> None:
        validator = SecurityValidator(StructuredLogger("test.auth"), self.SECRET)
        result = validator.validate_cron_auth(header)
        assert result.is_valid is False
        assert result.underlying_violation_type == expected

    def test_exact_header_passes(self) -> None:
        validator = SecurityValidator(StructuredLogger("test.auth"), self.SECRET)
        assert validator.validate_cron_auth(f"Bearer {self.SECRET}").is_valid is True

    @pytest.mark.parametrize("secret", [None, "", "\t \n"])
    def test_blank_configured_secret_rejects_everything(self, secret: str | None) -> None:
        validator = SecurityValidator(StructuredLogger("test.auth"), secret)
        result = validator.validate_cron_auth(f"Bearer {secret}")
        assert result.is_valid is False
        assert result.underlying_violation_type == "missing_secret"
