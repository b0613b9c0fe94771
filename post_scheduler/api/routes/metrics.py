"""
Scheduler metrics read paths for dashboards.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from post_scheduler.api.deps import get_metrics_repo
from post_scheduler.api.schemas import MetricsResponse
from post_scheduler.core.errors import InvalidDateTimeError
from post_scheduler.core.ports.repo import MetricsRepoPort

router = APIRouter()


@router.get("/recent", response_model=list[MetricsResponse])
def recent_metrics(
    limit: int = Query(default=10, ge=1, le=500),
    repo: MetricsRepoPort = Depends(get_metrics_repo),
) -> list[MetricsResponse]:
    return [MetricsResponse.from_metrics(m) for m in repo.get_recent_metrics(limit)]


@router.get("/range", response_model=list[MetricsResponse])
def metrics_in_range(
    start: str = Query(..., description="UTC ISO 8601 start (inclusive)"),
    end: str = Query(..., description="UTC ISO 8601 end (inclusive)"),
    repo: MetricsRepoPort = Depends(get_metrics_repo),
) -> list[MetricsResponse]:
    try:
        metrics = repo.get_metrics_by_date_range(start, end)
    except InvalidDateTimeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [MetricsResponse.from_metrics(m) for m in metrics]


@router.get("/{execution_id}", response_model=MetricsResponse)
def get_metrics(
    execution_id: str,
    repo: MetricsRepoPort = Depends(get_metrics_repo),
) -> MetricsResponse:
    metrics = repo.get_metrics(execution_id)
    if metrics is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return MetricsResponse.from_metrics(metrics)
