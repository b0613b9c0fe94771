"""
Timezone conversion tests.

America/New_York 2024 transitions:
- Spring forward: 2024-03-10 02:00 EST -> 03:00 EDT (07:00 UTC)
- Fall back: 2024-11-03 02:00 EDT -> 01:00 EST (06:00 UTC)
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from post_scheduler.adapters.clock import FrozenClock
from post_scheduler.components.timezone import TimezoneService
from post_scheduler.core.errors import InvalidDateTimeError
from post_scheduler.core.timefmt import is_utc_iso, parse_iso, parse_utc_iso

ZONES = [
    "UTC",
    "America/New_York",
    "Europe/London",
    "Asia/Tokyo",
    "Australia/Sydney",
    "Asia/Kolkata",
]

INVALID_ZONES = ["", "   ", "Invalid/Zone", "America/Not_A_City", "../../etc/passwd"]


@pytest.fixture
def service() -> TimezoneService:
    return TimezoneService(FrozenClock(datetime(2024, 6, 1, 12, 0, tzinfo=UTC)))


class TestValidation:
    @pytest.mark.parametrize("zone", ZONES)
    def test_known_zones_are_valid(self, service: TimezoneService, zone: str) -> None:
        assert service.validate_timezone(zone) is True

    @pytest.mark.parametrize("zone", INVALID_ZONES)
    def test_invalid_zones_rejected(self, service: TimezoneService, zone: str) -> None:
        assert service.validate_timezone(zone) is False


class TestConvertToUtc:
    def test_winter_offset(self, service: TimezoneService) -> None:
        """10:00 EST is 15:00 UTC."""
        assert (
            service.convert_to_utc("2024-01-01T10:00:00", "America/New_York")
            == "2024-01-01T15:00:00.000Z"
        )

    def test_summer_offset(self, service: TimezoneService) -> None:
        """10:00 EDT is 14:00 UTC."""
        assert (
            service.convert_to_utc("2024-07-01T10:00:00", "America/New_York")
            == "2024-07-01T14:00:00.000Z"
        )

    def test_zone_suffix_wins_over_argument(self, service: TimezoneService) -> None:
        assert (
            service.convert_to_utc("2024-01-01T10:00:00Z", "America/New_York")
            == "2024-01-01T10:00:00.000Z"
        )
        assert (
            service.convert_to_utc("2024-01-01T10:00:00+02:00", "America/New_York")
            == "2024-01-01T08:00:00.000Z"
        )

    def test_output_is_canonical_utc(self, service: TimezoneService) -> None:
        result = service.convert_to_utc("2024-01-01T10:00:00.123456", "Asia/Tokyo")
        assert is_utc_iso(result)
        assert result == "2024-01-01T01:00:00.123Z"

    @pytest.mark.parametrize("zone", INVALID_ZONES)
    def test_invalid_zone_falls_back_to_utc(self, service: TimezoneService, zone: str) -> None:
        assert service.convert_to_utc("2024-01-01T10:00:00", zone) == "2024-01-01T10:00:00.000Z"

    @pytest.mark.parametrize("value", ["", "not-a-date", "2024-13-45T99:00:00"])
    def test_unparsable_datetime_raises(self, service: TimezoneService, value: str) -> None:
        with pytest.raises(InvalidDateTimeError):
            service.convert_to_utc(value, "UTC")


class TestConvertFromUtc:
    def test_local_string_carries_offset(self, service: TimezoneService) -> None:
        assert (
            service.convert_from_utc("2024-01-01T15:00:00.000Z", "America/New_York")
            == "2024-01-01T10:00:00.000-05:00"
        )

    def test_utc_zone_returns_z_form(self, service: TimezoneService) -> None:
        assert service.convert_from_utc("2024-01-01T15:00:00.000Z", "UTC") == "2024-01-01T15:00:00.000Z"

    def test_naive_input_treated_as_utc(self, service: TimezoneService) -> None:
        assert (
            service.convert_from_utc("2024-01-01T15:00:00", "Asia/Tokyo")
            == "2024-01-02T00:00:00.000+09:00"
        )

    @pytest.mark.parametrize("zone", INVALID_ZONES)
    def test_invalid_zone_output_still_parses(self, service: TimezoneService, zone: str) -> None:
        result = service.convert_from_utc("2024-01-01T15:00:00.000Z", zone)
        assert parse_utc_iso(result) == datetime(2024, 1, 1, 15, 0, tzinfo=UTC)

    @pytest.mark.parametrize("zone", ZONES)
    def test_round_trip_preserves_instant(self, service: TimezoneService, zone: str) -> None:
        """to_utc(from_utc(t)) is the same instant for every zone."""
        for value in [
            "2024-01-15T08:30:00.000Z",
            "2024-03-10T07:30:00.000Z",
            "2024-07-04T23:59:59.999Z",
            "2024-11-03T06:30:00.000Z",
        ]:
            local = service.convert_from_utc(value, zone)
            assert service.convert_to_utc(local, zone) == value


class TestDst:
    def test_spring_forward_gap_uses_pre_transition_offset(
        self, service: TimezoneService
    ) -> None:
        """02:30 does not exist on 2024-03-10 in New York; EST (-05:00) applies."""
        utc = service.convert_to_utc("2024-03-10T02:30:00", "America/New_York")
        assert utc == "2024-03-10T07:30:00.000Z"
        assert service.convert_from_utc(utc, "America/New_York") == "2024-03-10T03:30:00.000-04:00"

    def test_fall_back_ambiguity_resolves_to_earlier_instant(
        self, service: TimezoneService
    ) -> None:
        """01:30 occurs twice on 2024-11-03; the EDT reading comes first."""
        assert (
            service.convert_to_utc("2024-11-03T01:30:00", "America/New_York")
            == "2024-11-03T05:30:00.000Z"
        )

    def test_handle_dst_transition_is_idempotent(self, service: TimezoneService) -> None:
        for value in ["2024-03-10T02:30:00", "2024-11-03T01:30:00", "2024-06-01T12:00:00"]:
            once = service.handle_dst_transition(value, "America/New_York")
            assert service.handle_dst_transition(once, "America/New_York") == once

    def test_handle_dst_transition_composes_with_conversions(
        self, service: TimezoneService
    ) -> None:
        local = service.handle_dst_transition("2024-03-10T02:30:00", "America/New_York")
        utc = service.convert_to_utc(local, "America/New_York")
        assert service.convert_from_utc(utc, "America/New_York") == local

    def test_handle_dst_transition_invalid_zone_returns_utc(
        self, service: TimezoneService
    ) -> None:
        assert (
            service.handle_dst_transition("2024-03-10T02:30:00", "Invalid/Zone")
            == "2024-03-10T02:30:00.000Z"
        )

    def test_near_transition_detected(self, service: TimezoneService) -> None:
        assert service.is_near_dst_transition("2024-03-10T12:00:00.000Z", "America/New_York")
        assert not service.is_near_dst_transition("2024-01-15T12:00:00.000Z", "America/New_York")
        assert not service.is_near_dst_transition("2024-03-10T12:00:00.000Z", "Asia/Tokyo")

    def test_dst_info(self, service: TimezoneService) -> None:
        assert service.get_dst_info("2024-07-01T12:00:00.000Z", "America/New_York") == (
            True,
            timedelta(hours=-4),
        )
        assert service.get_dst_info("2024-01-01T12:00:00.000Z", "America/New_York") == (
            False,
            timedelta(hours=-5),
        )


class TestDisplayHelpers:
    def test_current_utc_uses_clock(self, service: TimezoneService) -> None:
        assert service.get_current_utc() == "2024-06-01T12:00:00.000Z"

    def test_format_in_timezone(self, service: TimezoneService) -> None:
        assert (
            service.format_in_timezone("2024-01-01T15:00:00.000Z", "America/New_York", "%Y-%m-%d %H:%M")
            == "2024-01-01 10:00"
        )

    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            ("2024-06-01T12:00:20.000Z", "now"),
            ("2024-06-01T12:01:00.000Z", "in 1 minute"),
            ("2024-06-01T11:45:00.000Z", "15 minutes ago"),
            ("2024-06-01T14:00:00.000Z", "in 2 hours"),
            ("2024-05-29T12:00:00.000Z", "3 days ago"),
            ("2024-07-15T12:00:00.000Z", "Jul 15"),
            ("2025-01-02T12:00:00.000Z", "Jan 02, 2025"),
        ],
    )
    def test_relative_time(self, service: TimezoneService, target: str, expected: str) -> None:
        assert service.relative_time(target, "UTC") == expected

    def test_parse_iso_keeps_naive(self) -> None:
        assert parse_iso("2024-01-01T10:00:00").tzinfo is None
