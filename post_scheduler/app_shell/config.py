import logging
import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from post_scheduler.rules.models import Rules

logger = logging.getLogger(__name__)


def _valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def validate_rules(rules: Rules) -> list[str]:
    """Check value ranges the schema cannot express. Returns error messages."""
    errors: list[str] = []

    publisher = rules.publisher
    if publisher.max_retries < 0:
        errors.append("Database max retries must be non-negative")
    if publisher.initial_retry_delay_ms < 0:
        errors.append("Database initial retry delay must be non-negative")
    if publisher.max_retry_delay_ms < publisher.initial_retry_delay_ms:
        errors.append(
            "Database max retry delay must be greater than or equal to initial retry delay"
        )
    if publisher.max_batch_size <= 0:
        errors.append("Batch max size must be positive")
    if publisher.processing_timeout_ms <= 0:
        errors.append("Batch processing timeout must be positive")

    monitoring = rules.monitoring
    if monitoring.max_execution_time_ms <= 0:
        errors.append("Max execution time must be positive")
    if monitoring.slow_query_threshold_ms <= 0:
        errors.append("Slow query threshold must be positive")
    if not 0 <= monitoring.error_rate_threshold <= 1:
        errors.append("Error rate threshold must be between 0 and 1")

    tz = rules.timezone
    if not _valid_timezone(tz.default_timezone):
        errors.append(f"Invalid default timezone: {tz.default_timezone}")
    invalid = [name for name in tz.supported_timezones if not _valid_timezone(name)]
    if invalid:
        errors.append(f"Invalid supported timezones: {', '.join(invalid)}")

    security = rules.security
    if security.max_violations_per_ip <= 0:
        errors.append("Max violations per IP must be positive")
    if security.violation_window_seconds <= 0:
        errors.append("Violation window must be positive")

    return errors


def resolve_data_dir() -> Path:
    return Path(os.environ.get("SCHED_DATA_DIR", "./data"))


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.
    Exits the process on failure.
    """
    ops = rules.ops
    problems = validate_rules(rules)

    # 1. Data dir must exist (or be creatable) and be writable
    if ops.data_dir_required:
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            problems.append(f"Data directory {data_dir} cannot be created: {e}")
        else:
            if not os.access(data_dir, os.W_OK):
                problems.append(f"Data directory {data_dir} is not writable")

    # 2. Required env
    missing = [env_var for env_var in ops.required_env if env_var not in os.environ]
    if missing:
        problems.append(f"Missing required environment variables: {', '.join(missing)}")

    if problems:
        for problem in problems:
            print(f"CRITICAL: {problem}", file=sys.stderr)
        sys.exit(1)

    # 3. The cron secret is checked per request; warn early if it is absent
    if not os.environ.get(rules.security.cron_secret_env, "").strip():
        logger.warning(
            "%s is not set; every scheduler trigger will be rejected",
            rules.security.cron_secret_env,
        )
    if not os.environ.get(rules.security.jwt_secret_env, "").strip():
        logger.warning(
            "%s is not set; API tokens are signed with an insecure development key",
            rules.security.jwt_secret_env,
        )

    logger.info("Configuration validated")
