"""
Core records produced by the scheduler.

SchedulerMetrics is one row per scheduler execution, appended to the
metrics sink best-effort.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class SchedulerMetrics:
    """
    Metrics for one scheduler execution.

    Invariant: posts_published <= posts_processed.
    Timestamps are UTC ISO strings.
    """

    execution_id: str
    started_at: str
    completed_at: str
    posts_processed: int
    posts_published: int
    errors_encountered: int
    execution_duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
