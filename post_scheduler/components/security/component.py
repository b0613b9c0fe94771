"""
Security component - shared-secret authentication of scheduler triggers.

Checks run in a fixed order and the first failing one wins:
missing_secret, missing_auth_header / empty_auth_header, wrong_auth_type,
malformed_bearer_token, invalid_secret.

Every violation is logged and counted against the source IP; once the IP
reaches its limit inside the window the outward classification becomes
rate_limited.
"""

from __future__ import annotations

import hmac

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.app_shell.rate_limit import ViolationStats, ViolationTracker
from post_scheduler.components.security.models import (
    RequestMetadata,
    SecurityValidationResult,
    ViolationType,
)
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.timefmt import format_utc_iso
from post_scheduler.shell.isolation import best_effort
from post_scheduler.shell.logging import StructuredLogger

BEARER_PREFIX = "Bearer "
UNKNOWN_IP = "unknown"


def _secrets_match(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class SecurityValidator:
    """Validates trigger requests against the configured shared secret."""

    def __init__(
        self,
        logger: StructuredLogger,
        secret: str | None,
        tracker: ViolationTracker | None = None,
        clock: ClockPort | None = None,
    ) -> None:
        self._logger = logger
        self._secret = secret
        self._clock = clock or SystemClock()
        self._tracker = tracker or ViolationTracker(clock=self._clock)

    @property
    def tracker(self) -> ViolationTracker:
        return self._tracker

    def validate_cron_auth(
        self,
        auth_header: str | None,
        metadata: RequestMetadata | None = None,
    ) -> SecurityValidationResult:
        """
        Validate an Authorization header value.

        Args:
            auth_header: Raw header value, None when absent.
            metadata: Request details for the audit log.

        Returns:
            SecurityValidationResult. Never raises for bad input.
        """
        metadata = metadata or RequestMetadata()
        secret = self._secret

        if secret is None or not secret.strip():
            return self._violation(
                "missing_secret",
                "Cron secret is not configured or empty",
                metadata,
            )

        if auth_header is None:
            return self._violation(
                "missing_auth_header", "Missing authorization header", metadata
            )

        if auth_header == "":
            return self._violation("empty_auth_header", "Empty authorization header", metadata)

        if not auth_header.startswith(BEARER_PREFIX):
            scheme = auth_header.split(" ")[0]
            return self._violation(
                "wrong_auth_type",
                f"Invalid authorization type. Expected Bearer token, got: {scheme}",
                metadata,
            )

        token = auth_header[len(BEARER_PREFIX) :]
        if not token.strip():
            return self._violation(
                "malformed_bearer_token",
                "Malformed Bearer token - no token provided after Bearer",
                metadata,
            )

        if not _secrets_match(token, secret):
            return self._violation(
                "invalid_secret",
                "Invalid cron secret provided",
                metadata,
                {"provided_token_length": len(token)},
            )

        best_effort(
            self._logger.info,
            "Cron authentication successful",
            {
                "ip": metadata.ip or UNKNOWN_IP,
                "user_agent": metadata.user_agent,
                "method": metadata.method,
                "path": metadata.path,
            },
            label="log_auth_success",
        )
        return SecurityValidationResult(is_valid=True, security_violation=False)

    def _violation(
        self,
        violation_type: ViolationType,
        message: str,
        metadata: RequestMetadata,
        additional: dict[str, object] | None = None,
    ) -> SecurityValidationResult:
        timestamp = format_utc_iso(self._clock.now_utc())
        ip = metadata.ip or UNKNOWN_IP

        is_rate_limited = self._tracker.record_violation(ip)

        log_metadata: dict[str, object] = {
            **metadata.extra,
            "violation_type": violation_type,
            "ip": ip,
            "user_agent": metadata.user_agent,
            "method": metadata.method,
            "path": metadata.path,
            "timestamp": timestamp,
            "is_rate_limited": is_rate_limited,
            **(additional or {}),
        }
        log_entry = best_effort(
            self._logger.log_security_violation,
            message,
            log_metadata,
            label="log_security_violation",
        )

        return SecurityValidationResult(
            is_valid=False,
            security_violation=True,
            violation_type="rate_limited" if is_rate_limited else violation_type,
            error_message=message,
            underlying_violation_type=violation_type,
            logged_at=timestamp,
            log_entry=log_entry,
        )

    def cleanup_old_violations(self) -> int:
        return self._tracker.cleanup_old_violations()

    def get_violation_stats(self) -> ViolationStats:
        return self._tracker.get_violation_stats()
