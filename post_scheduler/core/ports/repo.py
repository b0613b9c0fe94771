"""
Repository interfaces consumed by the scheduler core.

The publish path depends on exactly two PostRepoPort operations:
get_due_posts and mark_published. The rest of PostRepoPort serves the
CRUD boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from post_scheduler.core.entities import SchedulerMetrics
from post_scheduler.domain.entities import Post, PostStatus, UserPreferences


class PostRepoPort(Protocol):
    """Durable store of posts."""

    def get_due_posts(self, before_utc: datetime) -> list[Post]:
        """
        SCHEDULED posts with scheduled_at <= before_utc.

        Ordered by scheduled_at ascending.
        """
        ...

    def mark_published(self, post_ids: list[str], published_at_utc: datetime) -> list[str]:
        """
        Conditionally transition posts SCHEDULED -> PUBLISHED.

        Atomic compare-and-set on status: only rows still SCHEDULED are
        updated. Returns the ids actually transitioned; its length is the
        count of rows flipped.
        """
        ...

    def create_post(self, post: Post) -> Post:
        """Insert a new post."""
        ...

    def update_post(self, post: Post) -> Post:
        """Update an existing post."""
        ...

    def get_by_id(self, post_id: str) -> Post | None:
        """Get post by ID."""
        ...

    def delete(self, post_id: str) -> None:
        """Delete post."""
        ...

    def list_by_user(self, user_id: str, status: PostStatus | None = None) -> list[Post]:
        """List a user's posts, newest first."""
        ...


class MetricsRepoPort(Protocol):
    """Append-only sink of scheduler execution metrics."""

    def save_metrics(self, metrics: SchedulerMetrics) -> bool:
        """Persist metrics. Returns False if the write did not happen."""
        ...

    def get_metrics(self, execution_id: str) -> SchedulerMetrics | None:
        """Get metrics for one execution."""
        ...

    def get_recent_metrics(self, limit: int = 10) -> list[SchedulerMetrics]:
        """Most recent executions first."""
        ...

    def get_metrics_by_date_range(self, start_utc: str, end_utc: str) -> list[SchedulerMetrics]:
        """Executions started within [start_utc, end_utc], most recent first."""
        ...


class PreferencesRepoPort(Protocol):
    """Per-user preferences (display timezone)."""

    def get(self, user_id: str) -> UserPreferences | None:
        ...

    def save(self, prefs: UserPreferences) -> UserPreferences:
        ...
