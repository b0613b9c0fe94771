"""Security component - authenticates scheduler triggers."""

from post_scheduler.components.security.component import SecurityValidator
from post_scheduler.components.security.models import (
    RequestMetadata,
    SecurityValidationResult,
    ViolationType,
)

__all__ = [
    "SecurityValidator",
    "RequestMetadata",
    "SecurityValidationResult",
    "ViolationType",
]
