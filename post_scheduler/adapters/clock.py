"""
Clock adapters.

SystemClock reads the host clock in UTC regardless of the process-local
timezone. FrozenClock returns a fixed instant for deterministic tests.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000.0


class FrozenClock:
    """
    Clock that returns a fixed time.

    monotonic_ms follows the frozen time so durations are deterministic too.
    """

    def __init__(self, frozen_utc: datetime) -> None:
        if frozen_utc.tzinfo is None:
            frozen_utc = frozen_utc.replace(tzinfo=UTC)
        self._frozen_utc = frozen_utc.astimezone(UTC)

    def now_utc(self) -> datetime:
        return self._frozen_utc

    def monotonic_ms(self) -> float:
        return self._frozen_utc.timestamp() * 1000.0

    def advance(self, delta: timedelta) -> None:
        """Advance frozen time by delta (for testing)."""
        self._frozen_utc = self._frozen_utc + delta
