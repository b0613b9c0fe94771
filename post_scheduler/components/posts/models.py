"""Posts component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field

from post_scheduler.domain.entities import Post, UserPreferences


@dataclass(frozen=True)
class PostValidationError:
    """Validation error details for post operations."""

    code: str
    message: str
    field: str


@dataclass(frozen=True)
class CreatePostInput:
    """
    Input for creating a post.

    scheduled_at is the user's wall-clock time; user_timezone defaults to
    the user's saved preference.
    """

    user_id: str
    content: str
    status: str = "DRAFT"
    scheduled_at: str | None = None
    user_timezone: str | None = None


@dataclass(frozen=True)
class UpdatePostInput:
    """Input for updating a post. None means keep the current value."""

    user_id: str
    post_id: str
    content: str | None = None
    status: str | None = None
    scheduled_at: str | None = None
    user_timezone: str | None = None


@dataclass(frozen=True)
class PostView:
    """A post plus its timestamps converted into the viewer's timezone."""

    post: Post
    timezone: str
    created_at_display: str
    scheduled_at_display: str | None = None
    published_at_display: str | None = None
    scheduled_at_relative: str | None = None


@dataclass(frozen=True)
class PostOutput:
    post: PostView | None
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PostListOutput:
    posts: list[PostView] = field(default_factory=list)
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeleteOutput:
    deleted: bool
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PreferencesOutput:
    preferences: UserPreferences | None
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True
