import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from post_scheduler.rules.models import Rules


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# env var -> (section, field, parser)
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "DB_MAX_RETRIES": ("publisher", "max_retries", int),
    "DB_INITIAL_RETRY_DELAY_MS": ("publisher", "initial_retry_delay_ms", int),
    "DB_MAX_RETRY_DELAY_MS": ("publisher", "max_retry_delay_ms", int),
    "SCHEDULER_MAX_BATCH_SIZE": ("publisher", "max_batch_size", int),
    "SCHEDULER_PROCESSING_TIMEOUT_MS": ("publisher", "processing_timeout_ms", int),
    "SCHEDULER_MAX_EXECUTION_TIME_MS": ("monitoring", "max_execution_time_ms", int),
    "SLOW_QUERY_THRESHOLD_MS": ("monitoring", "slow_query_threshold_ms", int),
    "ERROR_RATE_THRESHOLD": ("monitoring", "error_rate_threshold", float),
    "ALERTING_ENABLED": ("monitoring", "alerting_enabled", _to_bool),
    "DEFAULT_TIMEZONE": ("timezone", "default_timezone", str),
    "LOG_LEVEL": ("logging", "level", str.lower),
    "MAX_VIOLATIONS_PER_IP": ("security", "max_violations_per_ip", int),
    "VIOLATION_WINDOW_SECONDS": ("security", "violation_window_seconds", int),
    "TRUST_FORWARDED_FOR": ("security", "trust_forwarded_for", _to_bool),
}


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def apply_env_overrides(rules: Rules, environ: Mapping[str, str] | None = None) -> Rules:
    """
    Return a copy of rules with environment variable overrides applied.

    Raises ValueError if an override cannot be parsed or breaks the schema.
    """
    env = os.environ if environ is None else environ
    data = rules.model_dump()

    for env_var, (section, field, parse) in ENV_OVERRIDES.items():
        raw = env.get(env_var)
        if raw is None or raw.strip() == "":
            continue
        try:
            data[section][field] = parse(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_var}: {raw!r}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed after env overrides:\n{e}") from e


def load_rules_with_env(path: Path, environ: Mapping[str, str] | None = None) -> Rules:
    return apply_env_overrides(load_rules(path), environ)
