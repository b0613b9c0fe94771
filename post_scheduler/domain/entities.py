from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
PostStatus = Literal["DRAFT", "SCHEDULED", "PUBLISHED"]

POST_STATUSES: tuple[PostStatus, ...] = ("DRAFT", "SCHEDULED", "PUBLISHED")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


# --- Posts ---


class Post(BaseModel):
    """
    A unit of content with a publishing lifecycle.

    scheduled_at / published_at / created_at are always UTC.
    user_timezone and original_scheduled_time are kept for display only.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str
    content: str
    status: PostStatus = "DRAFT"
    scheduled_at: datetime | None = None
    published_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    user_timezone: str | None = None
    original_scheduled_time: str | None = None


# --- User Preferences ---


class UserPreferences(BaseModel):
    user_id: str
    timezone: str = "UTC"
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
