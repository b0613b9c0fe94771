"""
Service wiring.

ServiceContext builds every adapter and service from validated rules so the
CLI and the HTTP app share one construction path.
"""

from __future__ import annotations

import os
import time
from collections.abc import Mapping
from dataclasses import dataclass

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.adapters.sqlite.repos import (
    SQLiteMetricsRepo,
    SQLitePostRepo,
    SQLitePreferencesRepo,
)
from post_scheduler.app_shell.config import validate_rules
from post_scheduler.app_shell.rate_limit import ViolationTracker
from post_scheduler.components.posts import PostService
from post_scheduler.components.publish import PostPublisher, PublisherConfig
from post_scheduler.components.scheduler import SchedulerService
from post_scheduler.components.security import SecurityValidator
from post_scheduler.components.timezone import TimezoneService
from post_scheduler.core.errors import ConfigurationError
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.services.performance import PerformanceMonitor, PerformanceThresholds
from post_scheduler.core.services.retry import SleepFn
from post_scheduler.rules.models import Rules
from post_scheduler.shell.logging import StructuredLogger


def publisher_config_from_rules(rules: Rules) -> PublisherConfig:
    return PublisherConfig(
        max_batch_size=rules.publisher.max_batch_size,
        max_retries=rules.publisher.max_retries,
        base_delay_ms=rules.publisher.initial_retry_delay_ms,
        max_delay_ms=rules.publisher.max_retry_delay_ms,
        slow_query_threshold_ms=rules.monitoring.slow_query_threshold_ms,
    )


def thresholds_from_rules(rules: Rules) -> PerformanceThresholds:
    return PerformanceThresholds(
        max_execution_time_ms=rules.monitoring.max_execution_time_ms,
        error_rate_threshold=rules.monitoring.error_rate_threshold * 100,
        alerting_enabled=rules.monitoring.alerting_enabled,
    )


@dataclass
class ServiceContext:
    rules: Rules
    clock: ClockPort
    logger: StructuredLogger
    post_repo: SQLitePostRepo
    metrics_repo: SQLiteMetricsRepo
    preferences_repo: SQLitePreferencesRepo
    timezone_service: TimezoneService
    publisher: PostPublisher
    monitor: PerformanceMonitor
    scheduler: SchedulerService
    security: SecurityValidator
    post_service: PostService

    @classmethod
    def create(
        cls,
        db_path: str,
        rules: Rules,
        environ: Mapping[str, str] | None = None,
        clock: ClockPort | None = None,
        sleep: SleepFn = time.sleep,
    ) -> ServiceContext:
        errors = validate_rules(rules)
        if errors:
            raise ConfigurationError(errors)

        env = os.environ if environ is None else environ
        clock = clock or SystemClock()
        busy_timeout_ms = rules.publisher.processing_timeout_ms

        # Adapters
        post_repo = SQLitePostRepo(db_path, busy_timeout_ms)
        metrics_repo = SQLiteMetricsRepo(db_path, busy_timeout_ms)
        preferences_repo = SQLitePreferencesRepo(db_path, busy_timeout_ms)

        # Shell
        logger = StructuredLogger(
            "post_scheduler.scheduler",
            clock=clock,
            enable_correlation_ids=rules.logging.correlation_ids,
        )

        # Services
        timezone_service = TimezoneService(clock)
        publisher = PostPublisher(
            post_repo, publisher_config_from_rules(rules), clock=clock, sleep=sleep
        )
        monitor = PerformanceMonitor(logger, thresholds_from_rules(rules))
        scheduler = SchedulerService(publisher, metrics_repo, logger, monitor, clock)
        tracker = ViolationTracker(
            max_violations=rules.security.max_violations_per_ip,
            window_seconds=rules.security.violation_window_seconds,
            clock=clock,
        )
        security = SecurityValidator(
            StructuredLogger("post_scheduler.security", clock=clock),
            env.get(rules.security.cron_secret_env),
            tracker,
            clock,
        )
        post_service = PostService(
            post_repo,
            preferences_repo,
            timezone_service,
            clock,
            default_timezone=rules.timezone.default_timezone,
        )

        return cls(
            rules=rules,
            clock=clock,
            logger=logger,
            post_repo=post_repo,
            metrics_repo=metrics_repo,
            preferences_repo=preferences_repo,
            timezone_service=timezone_service,
            publisher=publisher,
            monitor=monitor,
            scheduler=scheduler,
            security=security,
            post_service=post_service,
        )
