from typing import Literal

from pydantic import BaseModel, Field


class PublisherRules(BaseModel):
    max_batch_size: int
    processing_timeout_ms: int
    max_retries: int
    initial_retry_delay_ms: int
    max_retry_delay_ms: int


class MonitoringRules(BaseModel):
    max_execution_time_ms: int
    slow_query_threshold_ms: int
    # Fraction of processed posts, 0.05 == 5%
    error_rate_threshold: float
    alerting_enabled: bool = True


class TimezoneRules(BaseModel):
    default_timezone: str = "UTC"
    supported_timezones: list[str] = Field(default_factory=list)


class SecurityRules(BaseModel):
    cron_secret_env: str = "CRON_SECRET"
    jwt_secret_env: str = "JWT_SECRET"
    max_violations_per_ip: int
    violation_window_seconds: int
    # Only honour X-Forwarded-For behind a proxy that sets it
    trust_forwarded_for: bool = False


class LoggingRules(BaseModel):
    level: Literal["debug", "info", "warn", "error"] = "info"
    structured: bool = True
    correlation_ids: bool = True


class OpsRules(BaseModel):
    data_dir_required: bool
    required_env: list[str]


class Rules(BaseModel):
    publisher: PublisherRules
    monitoring: MonitoringRules
    timezone: TimezoneRules
    security: SecurityRules
    logging: LoggingRules
    ops: OpsRules
