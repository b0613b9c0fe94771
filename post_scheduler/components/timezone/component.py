"""
Timezone component - conversion between user wall-clock time and UTC.

Storage is always UTC. Conversion never hard-fails on a bad timezone
identifier: an unknown zone is logged and UTC is used instead. An
unparsable datetime string is a hard error (InvalidDateTimeError).

Key behaviors:
- Validation delegates to the platform tz database (zoneinfo / tzdata),
  so the full IANA set is accepted.
- A zone suffix on the input (Z or +HH:MM) wins over the timezone argument.
- Wall-clock times in a spring-forward gap use the offset in force before
  the transition; ambiguous fall-back times resolve to the earlier instant.
- convert_from_utc returns a local ISO string with an explicit offset, so
  the output always parses back to the same instant.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from post_scheduler.adapters.clock import SystemClock
from post_scheduler.core.ports.time import ClockPort
from post_scheduler.core.timefmt import format_utc_iso, parse_iso, parse_utc_iso

logger = logging.getLogger(__name__)

FALLBACK_TIMEZONE = "UTC"
DEFAULT_DISPLAY_FORMAT = "%b %d, %Y %I:%M %p %Z"

# Window either side of an instant used to detect an offset change
DST_PROBE_WINDOW = timedelta(hours=24)


class TimezoneService:
    """Timezone conversion service."""

    def __init__(self, clock: ClockPort | None = None) -> None:
        self._clock = clock or SystemClock()

    # --- Validation ---

    def validate_timezone(self, timezone: str) -> bool:
        """True iff the identifier resolves in the platform tz database."""
        if not isinstance(timezone, str) or not timezone.strip():
            return False
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError, OSError, TypeError):
            return False
        return True

    def _resolve_zone(self, timezone: str) -> ZoneInfo:
        if self.validate_timezone(timezone):
            return ZoneInfo(timezone)
        logger.warning("Invalid timezone %r, defaulting to %s", timezone, FALLBACK_TIMEZONE)
        return ZoneInfo(FALLBACK_TIMEZONE)

    # --- Conversions ---

    def get_current_utc(self) -> str:
        """Current instant as a UTC ISO string."""
        return format_utc_iso(self._clock.now_utc())

    def convert_to_utc(self, local_datetime: str, timezone: str) -> str:
        """
        Convert a wall-clock datetime in `timezone` to a UTC ISO string.

        Args:
            local_datetime: ISO datetime, with or without a zone suffix.
            timezone: IANA identifier; invalid values fall back to UTC.

        Returns:
            ``YYYY-MM-DDTHH:MM:SS.mmmZ``

        Raises:
            InvalidDateTimeError: if local_datetime cannot be parsed.
        """
        zone = self._resolve_zone(timezone)
        dt = parse_iso(local_datetime)
        if dt.tzinfo is None:
            # fold=0: gap -> pre-transition offset, ambiguous -> earlier instant
            dt = dt.replace(tzinfo=zone, fold=0)
        return format_utc_iso(dt)

    def convert_from_utc(self, utc_datetime: str, timezone: str) -> str:
        """
        Convert a UTC datetime to local time in `timezone` for display.

        Naive input is treated as UTC. Returns the UTC ``...Z`` form when
        the (possibly fallback) zone is UTC, else a local ISO string with
        its offset, e.g. ``2024-01-01T05:00:00.000-05:00``.

        Raises:
            InvalidDateTimeError: if utc_datetime cannot be parsed.
        """
        zone = self._resolve_zone(timezone)
        dt = parse_utc_iso(utc_datetime)
        if zone.key == FALLBACK_TIMEZONE:
            return format_utc_iso(dt)
        return dt.astimezone(zone).isoformat(timespec="milliseconds")

    # --- DST ---

    def is_near_dst_transition(self, utc_datetime: str, timezone: str) -> bool:
        """True if the zone's offset changes within a day either side of the instant."""
        zone = self._resolve_zone(timezone)
        instant = parse_utc_iso(utc_datetime)
        offsets = {
            (instant - DST_PROBE_WINDOW).astimezone(zone).utcoffset(),
            instant.astimezone(zone).utcoffset(),
            (instant + DST_PROBE_WINDOW).astimezone(zone).utcoffset(),
        }
        return len(offsets) > 1

    def get_dst_info(self, utc_datetime: str, timezone: str) -> tuple[bool, timedelta]:
        """
        DST information for an instant.

        Returns:
            Tuple of (is_dst, utc_offset)
        """
        zone = self._resolve_zone(timezone)
        local_dt = parse_utc_iso(utc_datetime).astimezone(zone)
        dst = local_dt.dst() or timedelta(0)
        return dst != timedelta(0), local_dt.utcoffset() or timedelta(0)

    def handle_dst_transition(self, date_time: str, timezone: str) -> str:
        """
        Resolve a datetime against the tz database's authoritative offset.

        Returns the local display string for the resolved instant. The
        result is stable when fed back in, and when composed with
        convert_to_utc / convert_from_utc.
        """
        if not self.validate_timezone(timezone):
            logger.warning("Invalid timezone %r, defaulting to %s", timezone, FALLBACK_TIMEZONE)
            return self.convert_to_utc(date_time, FALLBACK_TIMEZONE)

        utc_iso = self.convert_to_utc(date_time, timezone)
        if self.is_near_dst_transition(utc_iso, timezone):
            logger.info("DST transition detected for %s in %s", date_time, timezone)
        return self.convert_from_utc(utc_iso, timezone)

    # --- Display helpers ---

    def format_in_timezone(
        self,
        utc_datetime: str,
        timezone: str,
        fmt: str = DEFAULT_DISPLAY_FORMAT,
    ) -> str:
        """Format a UTC datetime in the given timezone with strftime."""
        zone = self._resolve_zone(timezone)
        return parse_utc_iso(utc_datetime).astimezone(zone).strftime(fmt)

    def relative_time(
        self,
        utc_datetime: str,
        timezone: str,
        now_utc: datetime | None = None,
    ) -> str:
        """
        Human-friendly relative time ("in 2 hours", "3 days ago").

        Beyond a week the date is formatted in the user's timezone.
        """
        target = parse_utc_iso(utc_datetime)
        now = now_utc or self._clock.now_utc()
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)

        diff_seconds = (target - now).total_seconds()
        minutes = round(diff_seconds / 60)
        hours = round(diff_seconds / 3600)
        days = round(diff_seconds / 86400)

        if abs(minutes) < 1:
            return "now"
        if abs(minutes) < 60:
            return _relative(minutes, "minute")
        if abs(hours) < 24:
            return _relative(hours, "hour")
        if abs(days) < 7:
            return _relative(days, "day")

        fmt = "%b %d" if target.year == now.year else "%b %d, %Y"
        return self.format_in_timezone(utc_datetime, timezone, fmt)


def _relative(amount: int, unit: str) -> str:
    label = unit if abs(amount) == 1 else f"{unit}s"
    if amount > 0:
        return f"in {amount} {label}"
    return f"{abs(amount)} {label} ago"
