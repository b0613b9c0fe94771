"""
Performance checks over scheduler execution metrics.

Key behaviors:
- Execution duration above the threshold raises a warning alert; above
  twice the threshold the alert is critical
- Error rate is errors_encountered as a percentage of posts_processed,
  with the same warning/critical split
- No alerts at all when alerting is disabled
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from post_scheduler.core.entities import SchedulerMetrics
from post_scheduler.shell.logging import StructuredLogger

AlertType = Literal["execution_time", "error_rate"]
AlertSeverity = Literal["warning", "critical"]


@dataclass(frozen=True)
class PerformanceThresholds:
    """Alerting thresholds."""

    max_execution_time_ms: int = 30000
    error_rate_threshold: float = 5.0
    alerting_enabled: bool = True


@dataclass(frozen=True)
class PerformanceAlert:
    """A threshold breach for one execution."""

    type: AlertType
    severity: AlertSeverity
    message: str
    execution_id: str
    value: float
    threshold: float


def _severity(value: float, threshold: float) -> AlertSeverity:
    return "critical" if value > threshold * 2 else "warning"


class PerformanceMonitor:
    """Checks metrics against thresholds and logs alerts."""

    def __init__(
        self,
        logger: StructuredLogger,
        thresholds: PerformanceThresholds | None = None,
    ) -> None:
        self._logger = logger
        self._thresholds = thresholds or PerformanceThresholds()

    @property
    def thresholds(self) -> PerformanceThresholds:
        return self._thresholds

    def check_performance(self, metrics: SchedulerMetrics) -> list[PerformanceAlert]:
        """Return alerts for metrics, logging each one."""
        if not self._thresholds.alerting_enabled:
            return []

        alerts: list[PerformanceAlert] = []

        duration = metrics.execution_duration_ms
        max_duration = self._thresholds.max_execution_time_ms
        if duration > max_duration:
            alerts.append(
                PerformanceAlert(
                    type="execution_time",
                    severity=_severity(duration, max_duration),
                    message=(
                        f"Scheduler execution took {duration}ms, "
                        f"exceeding threshold of {max_duration}ms"
                    ),
                    execution_id=metrics.execution_id,
                    value=duration,
                    threshold=max_duration,
                )
            )

        if metrics.posts_processed > 0:
            error_rate = metrics.errors_encountered / metrics.posts_processed * 100
            max_rate = self._thresholds.error_rate_threshold
            if error_rate > max_rate:
                alerts.append(
                    PerformanceAlert(
                        type="error_rate",
                        severity=_severity(error_rate, max_rate),
                        message=(
                            f"Error rate {error_rate:.1f}% exceeds threshold of {max_rate}%"
                        ),
                        execution_id=metrics.execution_id,
                        value=round(error_rate, 2),
                        threshold=max_rate,
                    )
                )

        for alert in alerts:
            self.log_performance_alert(alert)

        return alerts

    def log_performance_alert(self, alert: PerformanceAlert) -> None:
        metadata = {
            "alert_type": alert.type,
            "severity": alert.severity,
            "execution_id": alert.execution_id,
            "value": alert.value,
            "threshold": alert.threshold,
        }
        if alert.severity == "critical":
            self._logger.error(f"PERFORMANCE ALERT: {alert.message}", metadata)
        else:
            self._logger.warn(f"PERFORMANCE ALERT: {alert.message}", metadata)
