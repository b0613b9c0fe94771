"""
Clock interface.

All internal timestamps are UTC. Components take a ClockPort so tests can
run against deterministic time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Source of the current time."""

    def now_utc(self) -> datetime:
        """Get current UTC time (timezone-aware)."""
        ...

    def monotonic_ms(self) -> float:
        """Monotonic milliseconds, for measuring durations."""
        ...
