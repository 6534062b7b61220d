"""Time-of-day parsing and wall-clock <-> instant conversion.

Pure calculation module. Centers configure their own IANA timezone, which is
not necessarily the server's, so every conversion takes the zone explicitly.
"""

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_WHITESPACE = re.compile(r"\s+")
_MERIDIEM = re.compile(r"([ap])\.?m\.?")
_LOOSE_TIME = re.compile(r"^(\d{1,2})(?::(\d{2}))?(am|pm)?$")
_STRICT_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class InvalidTimeFormat(ValueError):
    """Raised when a time-of-day string cannot be read as HH:mm."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid time '{value}'. Use HH:MM (e.g. 18:30) or 12-hour format (e.g. 6:30 p.m.).")


class UnknownTimezone(ValueError):
    def __init__(self, name: object):
        self.name = name
        super().__init__(f"Unknown timezone '{name}'. Use an IANA name such as Europe/Madrid.")


def normalize_to_hhmm(value: str | None) -> str | None:
    """Canonicalize a time-of-day to 24-hour "HH:mm", or None if unreadable.

    "8:00 a.m." / "8:00am" / "08:00" -> "08:00", "10:00 PM" -> "22:00",
    "12:00 a.m." -> "00:00", "12:00 p.m." -> "12:00". Without a meridiem only
    strict "HH:mm" passes through; the caller decides what to do with None.
    """
    if not value:
        return None

    s = _WHITESPACE.sub("", str(value).strip().lower())
    s = _MERIDIEM.sub(lambda m: f"{m.group(1)}m", s, count=1)

    match = _LOOSE_TIME.match(s)
    if match is None:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = match.group(3)

    if meridiem is None:
        return s if _STRICT_HHMM.match(s) else None

    if not 1 <= hour <= 12 or minute > 59:
        return None
    if meridiem == "am":
        hour = 0 if hour == 12 else hour
    elif hour != 12:
        hour += 12
    return f"{hour:02d}:{minute:02d}"


def require_hhmm(value: str | None) -> str:
    """Like normalize_to_hhmm, but raise InvalidTimeFormat instead of returning None."""
    hhmm = normalize_to_hhmm(value)
    if hhmm is None:
        raise InvalidTimeFormat(value)
    return hhmm


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, TypeError, ValueError, OSError):
        raise UnknownTimezone(name) from None


def parse_date(value: str | date) -> date:
    """Accept a date or an ISO "YYYY-MM-DD" string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date '{value}'. Use YYYY-MM-DD.") from None


def to_minutes(hhmm: str) -> int:
    h, m = map(int, hhmm.split(":"))
    return h * 60 + m


def from_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def to_time(hhmm: str) -> time:
    h, m = map(int, hhmm.split(":"))
    return time(h, m)


def combine_date_and_time(day: str | date, hhmm: str, timezone: str) -> datetime:
    """Return the UTC instant of wall-clock `hhmm` on `day` in `timezone`."""
    local = local_datetime(parse_date(day), require_hhmm(hhmm), get_zone(timezone))
    return local.astimezone(UTC)


def local_datetime(day: date, hhmm: str, zone: ZoneInfo) -> datetime:
    """Aware local datetime for day + HH:mm. Arithmetic on it is wall-clock arithmetic."""
    return datetime.combine(day, to_time(hhmm), tzinfo=zone)


def local_window(day: date, start_hhmm: str, end_hhmm: str, timezone: str) -> tuple[datetime, datetime]:
    """UTC (start, end) pair for a local window on one calendar day.

    An end of "00:00" means midnight at the end of the day.
    """
    zone = get_zone(timezone)
    start = local_datetime(day, start_hhmm, zone)
    end = local_datetime(day, end_hhmm, zone)
    if end_hhmm == "00:00":
        end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=zone)
    return start.astimezone(UTC), end.astimezone(UTC)


def local_hhmm(instant: datetime, timezone: str) -> str:
    """Wall-clock HH:mm of an instant in the given zone."""
    return instant.astimezone(get_zone(timezone)).strftime("%H:%M")


def minute_of_day(instant: datetime, timezone: str) -> int:
    local = instant.astimezone(get_zone(timezone))
    return local.hour * 60 + local.minute


def local_date(instant: datetime, timezone: str) -> date:
    return instant.astimezone(get_zone(timezone)).date()
