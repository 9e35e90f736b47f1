"""Tests for clock time and duration helpers."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from app.helpers.errors import InvalidParameterError
from app.helpers.time_formatting import (
    clock_time_after,
    format_clock_time,
    format_duration,
    format_transport_api_offset,
    iso_to_clock,
    minutes_between,
    now_in,
    parse_clock,
    parse_departure_offset,
)

LONDON = ZoneInfo("Europe/London")


class TestFormatClockTime:
    """Tests for 12-hour clock rendering."""

    @pytest.mark.parametrize(
        ("moment", "expected"),
        [
            (datetime(2025, 1, 1, 19, 51), "7:51 PM"),
            (datetime(2025, 1, 1, 0, 5), "12:05 AM"),
            (datetime(2025, 1, 1, 12, 0), "12:00 PM"),
            (datetime(2025, 1, 1, 9, 7), "9:07 AM"),
        ],
    )
    def test_format_clock_time(self, moment: datetime, expected: str) -> None:
        """Test hours are not zero padded and noon/midnight read as 12."""
        assert format_clock_time(moment) == expected

    def test_clock_time_after_adds_seconds(self, fixed_now: datetime) -> None:
        """Test that a bus arriving in 5 minutes shows 8:05 AM at 08:00."""
        assert clock_time_after(300, fixed_now) == "8:05 AM"

    def test_now_in_uses_timezone(self) -> None:
        """Test that now_in returns an aware datetime in the requested zone."""
        now = now_in("Europe/London")
        assert now.tzinfo == LONDON


class TestParseClock:
    """Tests for resolving HH:MM strings near now."""

    def test_later_time_is_same_day(self, fixed_now: datetime) -> None:
        moment = parse_clock("09:03", fixed_now)
        assert moment == fixed_now.replace(hour=9, minute=3)

    def test_recent_past_time_is_same_day(self, fixed_now: datetime) -> None:
        """Test that a train due a few minutes ago is not pushed to tomorrow."""
        moment = parse_clock("07:55", fixed_now)
        assert moment == fixed_now.replace(hour=7, minute=55)

    def test_time_after_midnight_rolls_over(self) -> None:
        """Test that 00:30 seen at 23:00 is the following day."""
        late = datetime(2025, 3, 10, 23, 0, tzinfo=LONDON)
        moment = parse_clock("00:30", late)
        assert moment == datetime(2025, 3, 11, 0, 30, tzinfo=LONDON)

    @pytest.mark.parametrize("value", [None, "", "soon", "25:00", "08:75"])
    def test_invalid_values_return_none(self, value: str | None, fixed_now: datetime) -> None:
        assert parse_clock(value, fixed_now) is None


class TestDurations:
    """Tests for minutes_between and format_duration."""

    def test_minutes_between(self) -> None:
        assert minutes_between("08:16", "09:03") == 47

    def test_minutes_between_wraps_midnight(self) -> None:
        assert minutes_between("23:50", "00:10") == 20

    def test_minutes_between_missing_value(self) -> None:
        assert minutes_between("08:16", None) is None
        assert minutes_between("N/A", "09:03") is None

    def test_format_duration(self) -> None:
        assert format_duration(47) == "00:47"
        assert format_duration(125) == "02:05"

    def test_iso_to_clock(self) -> None:
        """Test that TfL ISO datetimes become HH:MM and bad input becomes None."""
        assert iso_to_clock("2025-03-10T09:08:00") == "09:08"
        assert iso_to_clock("not a date") is None
        assert iso_to_clock(None) is None


class TestDepartureOffsets:
    """Tests for departure offset parsing and TransportAPI rendering."""

    @pytest.mark.parametrize(
        ("value", "minutes"),
        [
            ("30", 30),
            (45, 45),
            ("01:30", 90),
            ("PT01:30:00", 90),
            ("PT00:20", 20),
            (" 15 ", 15),
        ],
    )
    def test_accepted_forms(self, value: str | int, minutes: int) -> None:
        assert parse_departure_offset(value) == timedelta(minutes=minutes)

    @pytest.mark.parametrize("value", [None, ""])
    def test_absent_offset_is_none(self, value: str | None) -> None:
        assert parse_departure_offset(value) is None

    @pytest.mark.parametrize("value", ["soon", "-5", "1h", -10])
    def test_invalid_offset_raises(self, value: str | int) -> None:
        with pytest.raises(InvalidParameterError) as exc_info:
            parse_departure_offset(value)
        assert exc_info.value.parameter == "departureTimeOffSet"

    def test_format_transport_api_offset(self) -> None:
        assert format_transport_api_offset(timedelta(minutes=90)) == "PT01:30:00"
        assert format_transport_api_offset(timedelta(minutes=5)) == "PT00:05:00"

    def test_format_transport_api_offset_never_negative(self) -> None:
        assert format_transport_api_offset(timedelta(minutes=-3)) == "PT00:00:00"
