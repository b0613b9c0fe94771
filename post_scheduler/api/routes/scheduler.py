"""
Scheduler trigger route.

POST runs one scheduler execution once the shared-secret check passes.
Rejections are 401 (429 once the caller's IP is rate limited) with a
machine-readable violation type.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from post_scheduler.api.deps import (
    get_scheduler_service,
    get_security_validator,
    get_trust_forwarded_for,
)
from post_scheduler.components.scheduler import SchedulerService
from post_scheduler.components.security import RequestMetadata, SecurityValidator
from post_scheduler.core.timefmt import format_utc_iso
from post_scheduler.shell.isolation import best_effort

logger = logging.getLogger(__name__)

router = APIRouter()


def _now_iso() -> str:
    return format_utc_iso(datetime.now(UTC))


def _request_metadata(request: Request, trust_forwarded_for: bool) -> RequestMetadata:
    """Request details for the audit log; X-Forwarded-For only counts behind a trusted proxy."""
    forwarded = request.headers.get("x-forwarded-for") if trust_forwarded_for else None
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    elif request.client is not None:
        ip = request.client.host
    else:
        ip = "unknown"
    return RequestMetadata(
        ip=ip,
        user_agent=request.headers.get("user-agent", "unknown"),
        method=request.method,
        path=request.url.path,
    )


@router.post("")
def trigger_scheduler(
    request: Request,
    security: SecurityValidator = Depends(get_security_validator),
    scheduler: SchedulerService = Depends(get_scheduler_service),
    trust_forwarded_for: bool = Depends(get_trust_forwarded_for),
) -> Any:
    """Authenticate the trigger and run one publishing pass."""
    try:
        auth = security.validate_cron_auth(
            request.headers.get("authorization"), _request_metadata(request, trust_forwarded_for)
        )
        if not auth.is_valid:
            status_code = 429 if auth.violation_type == "rate_limited" else 401
            return JSONResponse(
                status_code=status_code,
                content={
                    "error": "Authentication failed",
                    "message": auth.error_message,
                    "violation_type": auth.violation_type,
                    "timestamp": auth.logged_at or _now_iso(),
                },
            )

        result = scheduler.execute_scheduled_publishing()

        return {
            "message": (
                f"Successfully processed {result.posts_processed} post(s), "
                f"published {result.posts_published}"
            ),
            **result.to_dict(),
            "timestamp": _now_iso(),
        }

    except Exception as e:
        best_effort(logger.exception, "Scheduler route error: %s", e, label="log_route_error")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred during scheduler execution",
                "timestamp": _now_iso(),
            },
        )


@router.get("")
def scheduler_status() -> dict[str, str]:
    return {
        "message": "Scheduler endpoint. Use POST with proper authorization to trigger publishing.",
        "status": "ready",
    }
