"""Publish component port definitions."""

from datetime import datetime
from typing import Protocol

from post_scheduler.domain.entities import Post


class DuePostRepoPort(Protocol):
    """The two repository operations the publish path depends on."""

    def get_due_posts(self, before_utc: datetime) -> list[Post]:
        """SCHEDULED posts due at or before before_utc, oldest first."""
        ...

    def mark_published(self, post_ids: list[str], published_at_utc: datetime) -> list[str]:
        """Flip still-SCHEDULED posts to PUBLISHED; return the ids flipped."""
        ...
