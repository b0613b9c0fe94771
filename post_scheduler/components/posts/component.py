"""
Posts component - the CRUD boundary in front of the post repository.

This is the only place user wall-clock input is turned into UTC. Once
scheduled_at is stored it is never re-derived from user_timezone or
original_scheduled_time.

Invariants:
- Owners may only set DRAFT or SCHEDULED; PUBLISHED is set by the publisher
- A SCHEDULED post always has scheduled_at; other statuses clear it
- PUBLISHED posts cannot be edited or deleted
- Posts are only visible to their owner (foreign ids read as not found)
"""

from __future__ import annotations

import logging
from datetime import datetime

from post_scheduler.adapters.clock import SystemClock
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
from post_scheduler.components.timezone import FALLBACK_TIMEZONE, TimezoneService
from post_scheduler.core.errors import InvalidDateTimeError
from post_scheduler.core.ports.repo import PostRepoPort, PreferencesRepoPort
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.timefmt import format_utc_iso, parse_utc_iso
from post_scheduler.domain.entities import POST_STATUSES, Post, PostStatus, UserPreferences
from post_scheduler.domain.state import OWNER_SETTABLE_STATUSES, can_transition, is_mutable

logger = logging.getLogger(__name__)


def _error(code: str, message: str, field: str) -> PostValidationError:
    return PostValidationError(code=code, message=message, field=field)


NOT_FOUND = _error("POST_NOT_FOUND", "Post not found", "post_id")


class PostService:
    """Create, read, update and delete posts on behalf of their owner."""

    def __init__(
        self,
        repo: PostRepoPort,
        preferences_repo: PreferencesRepoPort,
        timezone_service: TimezoneService | None = None,
        clock: ClockPort | None = None,
        default_timezone: str = FALLBACK_TIMEZONE,
    ) -> None:
        self._repo = repo
        self._default_timezone = default_timezone
        self._preferences_repo = preferences_repo
        self._clock = clock or SystemClock()
        self._tz = timezone_service or TimezoneService(self._clock)

    # --- Helpers ---

    def _preferred_timezone(self, user_id: str) -> str:
        prefs = self._preferences_repo.get(user_id)
        return prefs.timezone if prefs else self._default_timezone

    def _display(self, value: datetime | None, timezone: str) -> str | None:
        if value is None:
            return None
        return self._tz.convert_from_utc(format_utc_iso(value), timezone)

    def _view(self, post: Post, timezone: str) -> PostView:
        scheduled_relative = None
        if post.status == "SCHEDULED" and post.scheduled_at is not None:
            scheduled_relative = self._tz.relative_time(
                format_utc_iso(post.scheduled_at), timezone, self._clock.now_utc()
            )
        return PostView(
            post=post,
            timezone=timezone,
            created_at_display=self._display(post.created_at, timezone) or "",
            scheduled_at_display=self._display(post.scheduled_at, timezone),
            published_at_display=self._display(post.published_at, timezone),
            scheduled_at_relative=scheduled_relative,
        )

    def _owned(self, user_id: str, post_id: str) -> Post | None:
        post = self._repo.get_by_id(post_id)
        if post is None or post.user_id != user_id:
            return None
        return post

    def _check_status(self, status: str) -> list[PostValidationError]:
        if status not in POST_STATUSES:
            return [_error("INVALID_STATUS", f"Unknown status: {status}", "status")]
        if status not in OWNER_SETTABLE_STATUSES:
            return [
                _error(
                    "INVALID_STATUS",
                    "Posts are published by the scheduler, not set to PUBLISHED directly",
                    "status",
                )
            ]
        return []

    def _to_utc(
        self, scheduled_at: str, timezone: str
    ) -> tuple[datetime | None, list[PostValidationError]]:
        try:
            return parse_utc_iso(self._tz.convert_to_utc(scheduled_at, timezone)), []
        except InvalidDateTimeError as e:
            return None, [_error("INVALID_DATETIME", str(e), "scheduled_at")]

    # --- Posts ---

    def create_post(self, inp: CreatePostInput) -> PostOutput:
        if not inp.content or not inp.content.strip():
            return PostOutput(
                post=None,
                errors=[_error("CONTENT_REQUIRED", "Content is required", "content")],
                success=False,
            )

        status = inp.status or "DRAFT"
        errors = self._check_status(status)
        if errors:
            return PostOutput(post=None, errors=errors, success=False)

        if status == "SCHEDULED" and not inp.scheduled_at:
            return PostOutput(
                post=None,
                errors=[
                    _error(
                        "SCHEDULED_AT_REQUIRED",
                        "Scheduled date is required for scheduled posts",
                        "scheduled_at",
                    )
                ],
                success=False,
            )

        timezone = inp.user_timezone or self._preferred_timezone(inp.user_id)
        if not self._tz.validate_timezone(timezone):
            return PostOutput(
                post=None,
                errors=[_error("INVALID_TIMEZONE", "Invalid timezone identifier", "user_timezone")],
                success=False,
            )

        scheduled_utc: datetime | None = None
        original_scheduled_time: str | None = None
        if status == "SCHEDULED" and inp.scheduled_at:
            scheduled_utc, errors = self._to_utc(inp.scheduled_at, timezone)
            if errors:
                return PostOutput(post=None, errors=errors, success=False)
            original_scheduled_time = inp.scheduled_at

        post = Post(
            user_id=inp.user_id,
            content=inp.content,
            status=status,
            scheduled_at=scheduled_utc,
            created_at=self._clock.now_utc(),
            user_timezone=timezone,
            original_scheduled_time=original_scheduled_time,
        )
        saved = self._repo.create_post(post)
        logger.info("Created post %s (%s) for user %s", saved.id, saved.status, saved.user_id)
        return PostOutput(post=self._view(saved, timezone))

    def update_post(self, inp: UpdatePostInput) -> PostOutput:
        existing = self._owned(inp.user_id, inp.post_id)
        if existing is None:
            return PostOutput(post=None, errors=[NOT_FOUND], success=False)

        if not is_mutable(existing.status):
            return PostOutput(
                post=None,
                errors=[_error("POST_PUBLISHED", "Cannot edit published posts", "status")],
                success=False,
            )

        if inp.content is not None and not inp.content.strip():
            return PostOutput(
                post=None,
                errors=[_error("CONTENT_REQUIRED", "Content is required", "content")],
                success=False,
            )

        status = inp.status or existing.status
        errors = self._check_status(status)
        if errors:
            return PostOutput(post=None, errors=errors, success=False)

        new_status: PostStatus = status  # type: ignore[assignment]
        if not can_transition(existing.status, new_status):
            return PostOutput(
                post=None,
                errors=[
                    _error(
                        "INVALID_TRANSITION",
                        f"Cannot change status from {existing.status} to {new_status}",
                        "status",
                    )
                ],
                success=False,
            )

        timezone = (
            inp.user_timezone
            or existing.user_timezone
            or self._preferred_timezone(inp.user_id)
        )
        if not self._tz.validate_timezone(timezone):
            return PostOutput(
                post=None,
                errors=[_error("INVALID_TIMEZONE", "Invalid timezone identifier", "user_timezone")],
                success=False,
            )

        scheduled_utc = existing.scheduled_at
        original_scheduled_time = existing.original_scheduled_time
        if new_status == "SCHEDULED":
            if inp.scheduled_at:
                scheduled_utc, errors = self._to_utc(inp.scheduled_at, timezone)
                if errors:
                    return PostOutput(post=None, errors=errors, success=False)
                original_scheduled_time = inp.scheduled_at
            elif scheduled_utc is None:
                return PostOutput(
                    post=None,
                    errors=[
                        _error(
                            "SCHEDULED_AT_REQUIRED",
                            "Scheduled date is required for scheduled posts",
                            "scheduled_at",
                        )
                    ],
                    success=False,
                )
        else:
            scheduled_utc = None
            original_scheduled_time = None

        updated = existing.model_copy(
            update={
                "content": inp.content if inp.content is not None else existing.content,
                "status": new_status,
                "scheduled_at": scheduled_utc,
                "user_timezone": timezone,
                "original_scheduled_time": original_scheduled_time,
            }
        )
        saved = self._repo.update_post(updated)
        logger.info("Updated post %s (%s)", saved.id, saved.status)
        return PostOutput(post=self._view(saved, timezone))

    def delete_post(self, user_id: str, post_id: str) -> DeleteOutput:
        existing = self._owned(user_id, post_id)
        if existing is None:
            return DeleteOutput(deleted=False, errors=[NOT_FOUND], success=False)

        if not is_mutable(existing.status):
            return DeleteOutput(
                deleted=False,
                errors=[_error("POST_PUBLISHED", "Cannot delete published posts", "status")],
                success=False,
            )

        self._repo.delete(post_id)
        logger.info("Deleted post %s", post_id)
        return DeleteOutput(deleted=True)

    def get_post(self, user_id: str, post_id: str) -> PostOutput:
        post = self._owned(user_id, post_id)
        if post is None:
            return PostOutput(post=None, errors=[NOT_FOUND], success=False)
        return PostOutput(post=self._view(post, self._preferred_timezone(user_id)))

    def list_posts(self, user_id: str, status: str | None = None) -> PostListOutput:
        if status is not None and status not in POST_STATUSES:
            return PostListOutput(
                errors=[_error("INVALID_STATUS", f"Unknown status: {status}", "status")],
                success=False,
            )
        timezone = self._preferred_timezone(user_id)
        posts = self._repo.list_by_user(user_id, status)  # type: ignore[arg-type]
        return PostListOutput(posts=[self._view(p, timezone) for p in posts])

    # --- Preferences ---

    def get_preferences(self, user_id: str) -> PreferencesOutput:
        prefs = self._preferences_repo.get(user_id)
        if prefs is None:
            now = self._clock.now_utc()
            prefs = UserPreferences(
                user_id=user_id, timezone=self._default_timezone, created_at=now, updated_at=now
            )
        return PreferencesOutput(preferences=prefs)

    def update_preferences(self, user_id: str, timezone: str) -> PreferencesOutput:
        if not self._tz.validate_timezone(timezone):
            return PreferencesOutput(
                preferences=None,
                errors=[_error("INVALID_TIMEZONE", "Invalid timezone identifier", "timezone")],
                success=False,
            )

        now = self._clock.now_utc()
        existing = self._preferences_repo.get(user_id)
        if existing is None:
            prefs = UserPreferences(user_id=user_id, timezone=timezone, created_at=now, updated_at=now)
        else:
            prefs = existing.model_copy(update={"timezone": timezone, "updated_at": now})
        return PreferencesOutput(preferences=self._preferences_repo.save(prefs))
