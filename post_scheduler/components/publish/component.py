"""
Publish component - publishes due scheduled posts exactly once.

Invariants:
- Only ids the repository confirmed are reported as published
- A post skipped because another run already flipped it is not an error
  condition for success; it is reported in errors as a skip count
- Storage failures are retried with backoff; exhausted retries become
  error strings on the result, never exceptions
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import TypeVar

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.components.publish.models import PublisherConfig, PublishResult
from post_scheduler.components.publish.ports import DuePostRepoPort
from post_scheduler.core.errors import RetryExhaustedError
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.services.retry import RetryPolicy, SleepFn, retry_with_backoff
from post_scheduler.core.timefmt import parse_utc_iso
from post_scheduler.domain.entities import Post

logger = logging.getLogger(__name__)

T = TypeVar("T")


def validate_post_for_publishing(post: Post, now_utc: datetime) -> bool:
    """
    Check a post is eligible for publishing at now_utc.

    Eligible means SCHEDULED, with a scheduled_at at or before now and
    non-empty content.
    """
    if post.status != "SCHEDULED":
        return False
    if post.scheduled_at is None:
        return False
    if not post.content or not post.content.strip():
        return False
    scheduled_at = post.scheduled_at
    if scheduled_at.tzinfo is None:
        scheduled_at = scheduled_at.replace(tzinfo=UTC)
    return scheduled_at <= now_utc


def _batches(items: list[str], size: int) -> Iterator[list[str]]:
    size = max(1, size)
    for start in range(0, len(items), size):
        yield items[start : start + size]


class PostPublisher:
    """Publishes every due SCHEDULED post in batches."""

    def __init__(
        self,
        repo: DuePostRepoPort,
        config: PublisherConfig | None = None,
        clock: ClockPort | None = None,
        sleep: SleepFn = time.sleep,
    ) -> None:
        self._repo = repo
        self._config = config or PublisherConfig()
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._policy = RetryPolicy(
            max_retries=self._config.max_retries,
            base_delay_ms=self._config.base_delay_ms,
            max_delay_ms=self._config.max_delay_ms,
        )

    @property
    def config(self) -> PublisherConfig:
        return self._config

    def _call(self, operation: Callable[[], T], operation_name: str) -> T:
        """Run a storage call with retries, warning when it is slow."""
        started = self._clock.monotonic_ms()
        try:
            return retry_with_backoff(operation, operation_name, self._policy, self._sleep)
        finally:
            elapsed_ms = self._clock.monotonic_ms() - started
            if elapsed_ms > self._config.slow_query_threshold_ms:
                logger.warning(
                    "Slow storage call: %s took %.0fms (threshold %dms)",
                    operation_name,
                    elapsed_ms,
                    self._config.slow_query_threshold_ms,
                )

    def publish_scheduled_posts(self, current_utc_time: str) -> PublishResult:
        """
        Publish all posts due at or before current_utc_time.

        Args:
            current_utc_time: UTC ISO string for "now".

        Returns:
            PublishResult. Never raises.
        """
        published_ids: list[str] = []
        errors: list[str] = []
        processed = 0
        success = True

        try:
            now = parse_utc_iso(current_utc_time)
            due_posts = self._call(lambda: self._repo.get_due_posts(now), "get_due_posts")
            processed = len(due_posts)

            if not due_posts:
                logger.debug("No posts due at %s", current_utc_time)
                return PublishResult(success=True, published_count=0, processed_count=0)

            post_ids: list[str] = []
            for post in due_posts:
                if validate_post_for_publishing(post, now):
                    post_ids.append(post.id)
                else:
                    logger.warning("Post %s is not eligible for publishing, skipping", post.id)

            for batch in _batches(post_ids, self._config.max_batch_size):
                try:
                    confirmed = self._call(
                        lambda batch=batch: self._repo.mark_published(batch, now),
                        "mark_published",
                    )
                except RetryExhaustedError as e:
                    logger.error("Batch of %d posts failed: %s", len(batch), e)
                    errors.append(f"Batch processing failed: {e}")
                    success = False
                    continue

                requested = set(batch)
                confirmed = [post_id for post_id in confirmed if post_id in requested]
                published_ids.extend(confirmed)

                skipped = len(batch) - len(confirmed)
                if skipped > 0:
                    logger.info("%d posts already published by another run", skipped)
                    errors.append(f"{skipped} posts were skipped due to concurrent modifications")

        except Exception as e:
            logger.error("Publishing failed: %s", e)
            errors.append(f"Publishing failed: {e}")
            success = False

        return PublishResult(
            success=success,
            published_count=len(published_ids),
            post_ids=published_ids,
            errors=errors,
            processed_count=processed,
        )
