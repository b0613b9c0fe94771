"""
In-memory repositories.

Thread-safe under a single lock per repository. InMemoryPostRepo gives
mark_published the same compare-and-set semantics as the SQLite adapter,
so concurrency behaviour can be exercised without a database.
"""

from __future__ import annotations

from datetime import UTC, datetime
from threading import Lock

from post_scheduler.core.entities import SchedulerMetrics
from post_scheduler.core.timefmt import parse_utc_iso
from post_scheduler.domain.entities import Post, PostStatus, UserPreferences


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


class InMemoryPostRepo:
    def __init__(self, posts: list[Post] | None = None) -> None:
        self._posts: dict[str, Post] = {p.id: p for p in posts or []}
        self._lock = Lock()

    def get_due_posts(self, before_utc: datetime) -> list[Post]:
        before = _aware(before_utc)
        with self._lock:
            due = [
                p
                for p in self._posts.values()
                if p.status == "SCHEDULED"
                and p.scheduled_at is not None
                and _aware(p.scheduled_at) <= before
            ]
        return sorted(due, key=lambda p: _aware(p.scheduled_at))  # type: ignore[arg-type]

    def mark_published(self, post_ids: list[str], published_at_utc: datetime) -> list[str]:
        transitioned: list[str] = []
        with self._lock:
            for post_id in post_ids:
                post = self._posts.get(post_id)
                if post is None or post.status != "SCHEDULED":
                    continue
                self._posts[post_id] = post.model_copy(
                    update={"status": "PUBLISHED", "published_at": _aware(published_at_utc)}
                )
                transitioned.append(post_id)
        return transitioned

    def create_post(self, post: Post) -> Post:
        with self._lock:
            self._posts[post.id] = post
        return post

    def update_post(self, post: Post) -> Post:
        with self._lock:
            current = self._posts.get(post.id)
            if current is not None and current.status == "PUBLISHED":
                return current
            self._posts[post.id] = post
        return post

    def get_by_id(self, post_id: str) -> Post | None:
        with self._lock:
            return self._posts.get(post_id)

    def delete(self, post_id: str) -> None:
        with self._lock:
            post = self._posts.get(post_id)
            if post is not None and post.status != "PUBLISHED":
                del self._posts[post_id]

    def list_by_user(self, user_id: str, status: PostStatus | None = None) -> list[Post]:
        with self._lock:
            posts = [
                p
                for p in self._posts.values()
                if p.user_id == user_id and (status is None or p.status == status)
            ]
        return sorted(posts, key=lambda p: _aware(p.created_at), reverse=True)

    def all(self) -> list[Post]:
        with self._lock:
            return list(self._posts.values())


class InMemoryMetricsRepo:
    def __init__(self) -> None:
        self._metrics: dict[str, SchedulerMetrics] = {}
        self._lock = Lock()

    def save_metrics(self, metrics: SchedulerMetrics) -> bool:
        with self._lock:
            if metrics.execution_id in self._metrics:
                return False
            self._metrics[metrics.execution_id] = metrics
        return True

    def get_metrics(self, execution_id: str) -> SchedulerMetrics | None:
        with self._lock:
            return self._metrics.get(execution_id)

    def get_recent_metrics(self, limit: int = 10) -> list[SchedulerMetrics]:
        with self._lock:
            ordered = sorted(self._metrics.values(), key=lambda m: m.started_at, reverse=True)
        return ordered[:limit]

    def get_metrics_by_date_range(self, start_utc: str, end_utc: str) -> list[SchedulerMetrics]:
        start = parse_utc_iso(start_utc)
        end = parse_utc_iso(end_utc)
        with self._lock:
            matching = [
                m for m in self._metrics.values() if start <= parse_utc_iso(m.started_at) <= end
            ]
        return sorted(matching, key=lambda m: m.started_at, reverse=True)


class InMemoryPreferencesRepo:
    def __init__(self) -> None:
        self._prefs: dict[str, UserPreferences] = {}
        self._lock = Lock()

    def get(self, user_id: str) -> UserPreferences | None:
        with self._lock:
            return self._prefs.get(user_id)

    def save(self, prefs: UserPreferences) -> UserPreferences:
        with self._lock:
            self._prefs[prefs.user_id] = prefs
        return prefs
