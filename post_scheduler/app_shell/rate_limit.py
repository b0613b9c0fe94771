from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.core.ports.time import ClockPort


@dataclass(frozen=True)
class ViolationStats:
    total_ips: int
    total_violations: int
    rate_limited_ips: int


class ViolationTracker:
    """
    Per-IP sliding window of security violation timestamps.

    An IP is rate limited once it has max_violations violations inside the
    window. State is in-memory only and swept of IPs whose window elapsed.
    """

    def __init__(
        self,
        max_violations: int = 10,
        window_seconds: int = 60,
        clock: ClockPort | None = None,
    ):
        self.max_violations = max_violations
        self.window_seconds = window_seconds
        self._clock = clock if clock is not None else SystemClock()
        self._history: dict[str, list[datetime]] = {}
        self._lock = Lock()

    def _cutoff(self) -> datetime:
        return self._clock.now_utc() - timedelta(seconds=self.window_seconds)

    def _cleanup(self, key: str, cutoff: datetime) -> None:
        if key in self._history:
            self._history[key] = [t for t in self._history[key] if t > cutoff]
            if not self._history[key]:
                del self._history[key]

    def _sweep(self) -> int:
        cutoff = self._cutoff()
        before = len(self._history)
        for key in list(self._history):
            self._cleanup(key, cutoff)
        return before - len(self._history)

    def _limited(self, key: str) -> bool:
        if self.max_violations <= 0:
            return True
        return len(self._history.get(key, [])) >= self.max_violations

    def record_violation(self, ip: str) -> bool:
        """
        Record a violation for ip.

        Returns True if ip is rate limited after this violation.
        """
        with self._lock:
            self._sweep()
            self._history.setdefault(ip, []).append(self._clock.now_utc())
            return self._limited(ip)

    def is_rate_limited(self, ip: str) -> bool:
        with self._lock:
            self._cleanup(ip, self._cutoff())
            return self._limited(ip)

    def violation_count(self, ip: str) -> int:
        with self._lock:
            self._cleanup(ip, self._cutoff())
            return len(self._history.get(ip, []))

    def cleanup_old_violations(self) -> int:
        """Drop IPs with no violations inside the window. Returns how many were dropped."""
        with self._lock:
            return self._sweep()

    def get_violation_stats(self) -> ViolationStats:
        with self._lock:
            self._sweep()
            return ViolationStats(
                total_ips=len(self._history),
                total_violations=sum(len(v) for v in self._history.values()),
                rate_limited_ips=sum(1 for ip in self._history if self._limited(ip)),
            )
