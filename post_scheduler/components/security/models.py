"""Security component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field
from typing import Any, Literal

ViolationType = Literal[
    "missing_secret",
    "missing_auth_header",
    "empty_auth_header",
    "wrong_auth_type",
    "malformed_bearer_token",
    "invalid_secret",
    "rate_limited",
]


@dataclass(frozen=True)
class RequestMetadata:
    """Who sent the trigger request."""

    ip: str | None = None
    user_agent: str | None = None
    method: str | None = None
    path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SecurityValidationResult:
    """
    Outcome of validating a trigger request.

    violation_type is the outward classification ("rate_limited" once the
    source IP is over its limit); underlying_violation_type is always the
    check that actually failed.
    """

    is_valid: bool
    security_violation: bool
    violation_type: ViolationType | None = None
    error_message: str | None = None
    underlying_violation_type: ViolationType | None = None
    logged_at: str | None = None
    log_entry: dict[str, Any] | None = None
