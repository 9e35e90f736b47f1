"""Pure helpers for the clock times and durations shown in travel legs.

Upstream providers mix formats: TfL arrivals give seconds-to-arrival, TfL
journeys give ISO datetimes and TransportAPI gives bare "HH:MM" strings in UK
local time. Everything here takes ``now`` explicitly so callers (and tests)
control the clock.
"""

import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from app.helpers.errors import InvalidParameterError

# A parsed "HH:MM" further in the past than this is taken to be tomorrow
_ROLLOVER_WINDOW = timedelta(hours=6)

_ISO_OFFSET_RE = re.compile(r"^PT(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def now_in(timezone: str) -> datetime:
    """Return the current time in ``timezone``."""
    return datetime.now(ZoneInfo(timezone))


def format_clock_time(moment: datetime) -> str:
    """
    Format a datetime as a 12-hour clock time.

    Example:
        >>> format_clock_time(datetime(2025, 1, 1, 19, 51))
        '7:51 PM'
    """
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment:%M %p}"


def clock_time_after(seconds: float, now: datetime) -> str:
    """Clock time ``seconds`` after ``now``, e.g. for bus arrival predictions."""
    return format_clock_time(now + timedelta(seconds=seconds))


def parse_clock(value: str | None, now: datetime) -> datetime | None:
    """
    Resolve an "HH:MM" string to a datetime near ``now``.

    Times more than six hours before ``now`` are assumed to be after midnight.

    Returns:
        Datetime in ``now``'s timezone, or None if value is empty or malformed
    """
    if not value:
        return None
    match = _CLOCK_RE.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:  # noqa: PLR2004
        return None
    moment = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if moment < now - _ROLLOVER_WINDOW:
        moment += timedelta(days=1)
    return moment


def minutes_between(start: str | None, end: str | None) -> int | None:
    """
    Minutes from one "HH:MM" time to a later one, wrapping past midnight.

    Examples:
        >>> minutes_between("08:16", "09:03")
        47
        >>> minutes_between("23:50", "00:10")
        20
        >>> minutes_between("08:16", None) is None
        True
    """
    if not start or not end:
        return None
    start_match = _CLOCK_RE.match(start.strip())
    end_match = _CLOCK_RE.match(end.strip())
    if not start_match or not end_match:
        return None
    start_minutes = int(start_match.group(1)) * 60 + int(start_match.group(2))
    end_minutes = int(end_match.group(1)) * 60 + int(end_match.group(2))
    return (end_minutes - start_minutes) % (24 * 60)


def format_duration(minutes: int) -> str:
    """
    Format a number of minutes as "HH:MM".

    Example:
        >>> format_duration(47)
        '00:47'
    """
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def iso_to_clock(value: str | None) -> str | None:
    """Convert a TfL ISO datetime ("2025-01-01T08:10:00") to "HH:MM"."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).strftime("%H:%M")
    except ValueError:
        return None


def parse_departure_offset(value: str | int | None, parameter: str = "departureTimeOffSet") -> timedelta | None:
    """
    Parse a departure time offset.

    Accepts whole minutes ("30", 30), "HH:MM" ("01:30") or the TransportAPI
    form ("PT01:30:00").

    Raises:
        InvalidParameterError: If the value is present but not one of those forms
    """
    if value is None or value == "":
        return None
    if isinstance(value, int):
        minutes = value
    else:
        text = value.strip()
        if text.isdigit():
            minutes = int(text)
        elif match := _ISO_OFFSET_RE.match(text) or _CLOCK_RE.match(text):
            minutes = int(match.group(1)) * 60 + int(match.group(2))
        else:
            raise InvalidParameterError(parameter, value)
    if minutes < 0:
        raise InvalidParameterError(parameter, value)
    return timedelta(minutes=minutes)


def format_transport_api_offset(offset: timedelta) -> str:
    """
    Render an offset in the TransportAPI ``from_offset`` form.

    Example:
        >>> format_transport_api_offset(timedelta(minutes=90))
        'PT01:30:00'
    """
    total_minutes = max(int(offset.total_seconds() // 60), 0)
    hours, minutes = divmod(total_minutes, 60)
    return f"PT{hours:02d}:{minutes:02d}:00"
