"""Publish component models - frozen dataclass config and outputs."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PublisherConfig:
    """Batching and retry settings for the publisher."""

    max_batch_size: int = 50
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    slow_query_threshold_ms: int = 1000


@dataclass(frozen=True)
class PublishResult:
    """
    Output of one publishing pass.

    post_ids holds only the ids the repository confirmed as transitioned.
    processed_count is the size of the due set that was fetched.
    """

    success: bool
    published_count: int
    post_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    processed_count: int = 0
