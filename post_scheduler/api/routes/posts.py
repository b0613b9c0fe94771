"""
Post CRUD routes.

Every route acts on behalf of the user id carried in the bearer token.
Times in requests are wall-clock times in the user's timezone; responses
carry the stored UTC values plus *_display fields in the user's timezone.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from post_scheduler.api.deps import get_current_user_id, get_post_service
from post_scheduler.api.schemas import (
    ErrorDetail,
    PostCreateRequest,
    PostEnvelope,
    PostListResponse,
    PostResponse,
    PostUpdateRequest,
)
from post_scheduler.components.posts import (
    CreatePostInput,
    PostService,
    PostValidationError,
    UpdatePostInput,
)

router = APIRouter()


def _raise_for_errors(errors: list[PostValidationError]) -> None:
    status_code = (
        status.HTTP_404_NOT_FOUND
        if any(e.code == "POST_NOT_FOUND" for e in errors)
        else status.HTTP_400_BAD_REQUEST
    )
    raise HTTPException(
        status_code=status_code,
        detail={"errors": [ErrorDetail.from_error(e).model_dump() for e in errors]},
    )


@router.get("", response_model=PostListResponse)
def list_posts(
    status_filter: str | None = Query(default=None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostListResponse:
    """List the caller's posts, newest first, optionally by status."""
    result = service.list_posts(user_id, status_filter)
    if not result.success:
        _raise_for_errors(result.errors)
    return PostListResponse(posts=[PostResponse.from_view(v) for v in result.posts])


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
def create_post(
    req: PostCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostEnvelope:
    result = service.create_post(
        CreatePostInput(
            user_id=user_id,
            content=req.content,
            status=req.status,
            scheduled_at=req.scheduled_at,
            user_timezone=req.user_timezone,
        )
    )
    if not result.success or result.post is None:
        _raise_for_errors(result.errors)
    return PostEnvelope(post=PostResponse.from_view(result.post))  # type: ignore[arg-type]


@router.get("/{post_id}", response_model=PostEnvelope)
def get_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostEnvelope:
    result = service.get_post(user_id, post_id)
    if not result.success or result.post is None:
        _raise_for_errors(result.errors)
    return PostEnvelope(post=PostResponse.from_view(result.post))  # type: ignore[arg-type]


@router.put("/{post_id}", response_model=PostEnvelope)
def update_post(
    post_id: str,
    req: PostUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostEnvelope:
    result = service.update_post(
        UpdatePostInput(
            user_id=user_id,
            post_id=post_id,
            content=req.content,
            status=req.status,
            scheduled_at=req.scheduled_at,
            user_timezone=req.user_timezone,
        )
    )
    if not result.success or result.post is None:
        _raise_for_errors(result.errors)
    return PostEnvelope(post=PostResponse.from_view(result.post))  # type: ignore[arg-type]


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> dict[str, bool]:
    result = service.delete_post(user_id, post_id)
    if not result.success:
        _raise_for_errors(result.errors)
    return {"success": True}
