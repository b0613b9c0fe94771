"""Publish component - publishes due scheduled posts in batches."""

from post_scheduler.components.publish.component import (
    PostPublisher,
    validate_post_for_publishing,
)
from post_scheduler.components.publish.models import PublisherConfig, PublishResult
from post_scheduler.components.publish.ports import DuePostRepoPort

__all__ = [
    # Component
    "PostPublisher",
    "validate_post_for_publishing",
    # Models
    "PublisherConfig",
    "PublishResult",
    # Ports
    "DuePostRepoPort",
]
