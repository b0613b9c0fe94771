"""Posts component - owner-facing CRUD over scheduled posts."""

from post_scheduler.components.posts.component import PostService
from post_scheduler.components.posts.models import (
    CreatePostInput,
    DeleteOutput,
    PostListOutput,
    PostOutput,
    PostValidationError,
    PostView,
    PreferencesOutput,
    UpdatePostInput,
)

__all__ = [
    # Component
    "PostService",
    # Models
    "CreatePostInput",
    "UpdatePostInput",
    "PostView",
    "PostOutput",
    "PostListOutput",
    "DeleteOutput",
    "PreferencesOutput",
    "PostValidationError",
]
