from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from post_scheduler.components.posts import PostValidationError, PostView
from post_scheduler.core.entities import SchedulerMetrics

# --- Shared Types ---
PostStatus = Literal["DRAFT", "SCHEDULED", "PUBLISHED"]
WritableStatus = Literal["DRAFT", "SCHEDULED"]


# --- Posts ---
class PostCreateRequest(BaseModel):
    content: str
    status: WritableStatus = "DRAFT"
    scheduled_at: str | None = Field(
        default=None, description="Wall-clock time in user_timezone, ISO 8601"
    )
    user_timezone: str | None = None


class PostUpdateRequest(BaseModel):
    content: str | None = None
    status: WritableStatus | None = None
    scheduled_at: str | None = None
    user_timezone: str | None = None


class PostResponse(BaseModel):
    id: str
    user_id: str
    content: str
    status: PostStatus
    scheduled_at: datetime | None = None
    published_at: datetime | None = None
    created_at: datetime
    user_timezone: str | None = None
    original_scheduled_time: str | None = None
    display_timezone: str
    scheduled_at_display: str | None = None
    published_at_display: str | None = None
    created_at_display: str
    scheduled_at_relative: str | None = None

    @classmethod
    def from_view(cls, view: PostView) -> "PostResponse":
        return cls(
            **view.post.model_dump(),
            display_timezone=view.timezone,
            scheduled_at_display=view.scheduled_at_display,
            published_at_display=view.published_at_display,
            created_at_display=view.created_at_display,
            scheduled_at_relative=view.scheduled_at_relative,
        )


class PostEnvelope(BaseModel):
    post: PostResponse


class PostListResponse(BaseModel):
    posts: list[PostResponse]


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: str

    @classmethod
    def from_error(cls, error: PostValidationError) -> "ErrorDetail":
        return cls(code=error.code, message=error.message, field=error.field)


# --- Preferences ---
class PreferencesUpdateRequest(BaseModel):
    timezone: str


class PreferencesResponse(BaseModel):
    user_id: str
    timezone: str
    created_at: datetime
    updated_at: datetime


# --- Metrics ---
class MetricsResponse(BaseModel):
    execution_id: str
    started_at: str
    completed_at: str | None = None
    posts_processed: int
    posts_published: int
    errors_encountered: int
    execution_duration_ms: int | None = None

    @classmethod
    def from_metrics(cls, metrics: SchedulerMetrics) -> "MetricsResponse":
        return cls(**metrics.to_dict())
