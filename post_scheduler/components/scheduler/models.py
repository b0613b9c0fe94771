"""
Scheduler component models.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class SchedulerResult:
    """Outcome of one scheduler execution. Timestamps are UTC ISO strings."""

    execution_id: str
    started_at: str
    completed_at: str
    posts_processed: int
    posts_published: int
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
