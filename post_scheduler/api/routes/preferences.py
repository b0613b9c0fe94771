from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from post_scheduler.api.deps import (
    get_current_user_id,
    get_post_service,
    get_supported_timezones,
)
from post_scheduler.api.schemas import (
    ErrorDetail,
    PreferencesResponse,
    PreferencesUpdateRequest,
)
from post_scheduler.components.posts import PostService

router = APIRouter()


@router.get("", response_model=PreferencesResponse)
def get_preferences(
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PreferencesResponse:
    """Saved preferences, or the defaults if the user has none yet."""
    result = service.get_preferences(user_id)
    return PreferencesResponse(**result.preferences.model_dump())  # type: ignore[union-attr]


@router.put("", response_model=PreferencesResponse)
def update_preferences(
    req: PreferencesUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PreferencesResponse:
    result = service.update_preferences(user_id, req.timezone)
    if not result.success or result.preferences is None:
        raise HTTPException(
            status_code=400,
            detail={"errors": [ErrorDetail.from_error(e).model_dump() for e in result.errors]},
        )
    return PreferencesResponse(**result.preferences.model_dump())


@router.get("/timezones")
def list_supported_timezones(
    timezones: list[str] = Depends(get_supported_timezones),
) -> dict[str, list[str]]:
    """Timezones offered in the settings picker."""
    return {"timezones": timezones}
