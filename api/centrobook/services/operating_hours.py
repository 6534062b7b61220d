"""Operating hours model for center availability.

Pure calculation module with no database or FastAPI imports.
A center's weekly schedule, its date exceptions, the slot granularity and the
day/night watershed used for lighting all live in one immutable
OperatingHoursConfig. Updates never mutate a config; they build a new one.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date
from types import MappingProxyType

from centrobook.services.time_normalizer import (
    InvalidTimeFormat,
    UnknownTimezone,
    get_zone,
    normalize_to_hhmm,
    parse_date,
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

SEGMENT_DAY = "day"
SEGMENT_NIGHT = "night"

MIN_SLOT_MINUTES = 5
MAX_SLOT_MINUTES = 240


class InvalidOperatingHours(ValueError):
    """Raised when an operating hours update cannot be accepted."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class ConfigDefaults:
    """Fallbacks for any value a center has never configured."""

    open: str = "08:00"
    close: str = "22:00"
    timezone: str = "Europe/Madrid"
    slot_minutes: int = 30
    day_start: str = "06:00"
    night_start: str = "18:00"


DEFAULTS = ConfigDefaults()


@dataclass(frozen=True)
class DayHours:
    open: str
    close: str
    closed: bool = False

    def to_dict(self) -> dict:
        return {"open": self.open, "close": self.close, "closed": self.closed}


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class ScheduleException:
    """A date-specific override. closed=True, or no ranges, means closed all day."""

    day: date
    closed: bool = False
    ranges: tuple[TimeRange, ...] = ()

    def to_dict(self) -> dict:
        if self.closed:
            return {"date": self.day.isoformat(), "closed": True}
        return {"date": self.day.isoformat(), "ranges": [r.to_dict() for r in self.ranges]}


@dataclass(frozen=True)
class OperatingHoursConfig:
    weekly_schedule: Mapping[str, DayHours]
    exceptions: tuple[ScheduleException, ...] = ()
    slot_minutes: int = DEFAULTS.slot_minutes
    timezone: str = DEFAULTS.timezone
    day_start: str = DEFAULTS.day_start
    night_start: str = DEFAULTS.night_start

    def exception_for(self, day: date) -> ScheduleException | None:
        for exc in self.exceptions:
            if exc.day == day:
                return exc
        return None

    def to_dict(self) -> dict:
        return {
            "weekly_schedule": {day: self.weekly_schedule[day].to_dict() for day in WEEKDAYS},
            "exceptions": [e.to_dict() for e in self.exceptions],
            "slot_minutes": self.slot_minutes,
            "timezone": self.timezone,
            "day_start": self.day_start,
            "night_start": self.night_start,
        }


@dataclass(frozen=True)
class DayRule:
    """The open windows for one calendar date, after exceptions are applied."""

    is_open: bool
    windows: tuple[TimeRange, ...] = ()

    @property
    def open_hhmm(self) -> str | None:
        return self.windows[0].start if self.windows else None

    @property
    def close_hhmm(self) -> str | None:
        return self.windows[-1].end if self.windows else None


CLOSED_DAY = DayRule(is_open=False)


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def resolve_day_rule(day: date, config: OperatingHoursConfig) -> DayRule:
    """Resolve which windows are open on `day`.

    An exception for the exact date replaces the weekday rule entirely; its
    ranges are independent windows and are never intersected with the weekday.
    """
    exc = config.exception_for(day)
    if exc is not None:
        if exc.closed or not exc.ranges:
            return CLOSED_DAY
        return DayRule(is_open=True, windows=tuple(sorted(exc.ranges, key=lambda r: r.start)))

    hours = config.weekly_schedule[weekday_name(day)]
    if hours.closed:
        return CLOSED_DAY
    return DayRule(is_open=True, windows=(TimeRange(hours.open, hours.close),))


def classify_segment(hhmm: str, config: OperatingHoursConfig) -> str:
    """Return "day" when day_start <= hhmm < night_start, otherwise "night"."""
    value = normalize_to_hhmm(hhmm)
    if value is None:
        raise InvalidTimeFormat(hhmm)
    if config.day_start <= value < config.night_start:
        return SEGMENT_DAY
    return SEGMENT_NIGHT


# ---------------------------------------------------------------------------
# Normalization (admin "save center settings")
# ---------------------------------------------------------------------------


def _get(source: object, name: str):
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def normalize_config(
    partial: Mapping | None,
    previous: OperatingHoursConfig | None = None,
    defaults: ConfigDefaults = DEFAULTS,
) -> OperatingHoursConfig:
    """Build a complete config from a partial update.

    Every weekday is always emitted. Each open/close is passed through
    normalize_to_hhmm; unreadable or missing values fall back to `previous`,
    then to `defaults`. A weekday absent from the update keeps its previous
    closed flag. Exceptions are replaced wholesale when supplied.
    """
    partial = partial or {}
    weekly_in = _get(partial, "weekly_schedule") or _get(partial, "operating_hours") or {}

    weekly: dict[str, DayHours] = {}
    for day in WEEKDAYS:
        supplied = _get(weekly_in, day)
        prev = previous.weekly_schedule[day] if previous else None

        open_ = normalize_to_hhmm(_get(supplied, "open")) or (prev.open if prev else None) or defaults.open
        close = normalize_to_hhmm(_get(supplied, "close")) or (prev.close if prev else None) or defaults.close
        supplied_closed = _get(supplied, "closed") if supplied is not None else None
        if supplied_closed is not None:
            closed = bool(supplied_closed)
        else:
            closed = prev.closed if prev else False

        if not closed and open_ >= close:
            raise InvalidOperatingHours(
                f"weekly_schedule.{day}",
                f"{day.capitalize()}: opening time {open_} must be before closing time {close}.",
            )
        weekly[day] = DayHours(open=open_, close=close, closed=closed)

    slot_minutes = _pick(_get(partial, "slot_minutes"), previous and previous.slot_minutes, defaults.slot_minutes)
    try:
        slot_minutes = int(slot_minutes)
    except (TypeError, ValueError):
        raise InvalidOperatingHours("slot_minutes", f"Slot size '{slot_minutes}' is not a number.") from None
    if not MIN_SLOT_MINUTES <= slot_minutes <= MAX_SLOT_MINUTES:
        raise InvalidOperatingHours(
            "slot_minutes",
            f"Slot size must be between {MIN_SLOT_MINUTES} and {MAX_SLOT_MINUTES} minutes, got {slot_minutes}.",
        )

    timezone = _pick(_get(partial, "timezone"), previous and previous.timezone, defaults.timezone)
    try:
        get_zone(timezone)
    except UnknownTimezone as e:
        raise InvalidOperatingHours("timezone", str(e)) from None

    day_start = _pick(
        normalize_to_hhmm(_get(partial, "day_start")), previous and previous.day_start, defaults.day_start
    )
    night_start = _pick(
        normalize_to_hhmm(_get(partial, "night_start")), previous and previous.night_start, defaults.night_start
    )
    if day_start >= night_start:
        raise InvalidOperatingHours(
            "day_start", f"Day start {day_start} must be before night start {night_start}."
        )

    raw_exceptions = _get(partial, "exceptions")
    if raw_exceptions is not None:
        exceptions = normalize_exceptions(raw_exceptions)
    else:
        exceptions = previous.exceptions if previous else ()

    return OperatingHoursConfig(
        weekly_schedule=MappingProxyType(weekly),
        exceptions=exceptions,
        slot_minutes=slot_minutes,
        timezone=timezone,
        day_start=day_start,
        night_start=night_start,
    )


def _pick(*candidates):
    for c in candidates:
        if c is not None and c != "":
            return c
    return None


def normalize_exception(item: ScheduleException | Mapping) -> ScheduleException:
    """Read one exception, accepting the legacy {date, start, end} shape."""
    if isinstance(item, ScheduleException):
        return item

    try:
        day = parse_date(_get(item, "date"))
    except ValueError as e:
        raise InvalidOperatingHours("exceptions", f"Exception date: {e}") from None

    if _get(item, "closed"):
        return ScheduleException(day=day, closed=True)

    raw_ranges = _get(item, "ranges")
    if raw_ranges is None and (_get(item, "start") or _get(item, "end")):
        raw_ranges = [{"start": _get(item, "start"), "end": _get(item, "end")}]

    ranges = []
    for raw in raw_ranges or []:
        start = normalize_to_hhmm(_get(raw, "start"))
        end = normalize_to_hhmm(_get(raw, "end"))
        if start is None or end is None:
            raise InvalidOperatingHours(
                "exceptions",
                f"Exception on {day.isoformat()}: range '{_get(raw, 'start')}-{_get(raw, 'end')}' is not HH:MM.",
            )
        if start >= end:
            raise InvalidOperatingHours(
                "exceptions", f"Exception on {day.isoformat()}: range start {start} must be before end {end}."
            )
        ranges.append(TimeRange(start, end))

    return ScheduleException(day=day, closed=False, ranges=tuple(ranges))


def normalize_exceptions(items: Iterable) -> tuple[ScheduleException, ...]:
    """Unique by date (last write wins), sorted by date."""
    by_date: dict[date, ScheduleException] = {}
    for item in items:
        exc = normalize_exception(item)
        by_date[exc.day] = exc
    return tuple(sorted(by_date.values(), key=lambda e: e.day))


def with_exception(config: OperatingHoursConfig, exception: ScheduleException | Mapping) -> OperatingHoursConfig:
    """Return a new config with `exception` added, replacing any on the same date."""
    exc = normalize_exception(exception)
    return replace(config, exceptions=normalize_exceptions([*config.exceptions, exc]))


def without_exception(config: OperatingHoursConfig, day: date) -> OperatingHoursConfig:
    return replace(config, exceptions=tuple(e for e in config.exceptions if e.day != day))


def config_from_center(center: object, defaults: ConfigDefaults = DEFAULTS) -> OperatingHoursConfig:
    """Build the config from a persisted center row (columns + settings JSON)."""
    stored = _get(center, "settings") or {}
    partial = {
        "weekly_schedule": stored.get("operating_hours"),
        "slot_minutes": stored.get("slot_minutes"),
        "exceptions": stored.get("exceptions"),
        "timezone": _get(center, "timezone"),
        "day_start": _get(center, "day_start"),
        "night_start": _get(center, "night_start"),
    }
    return normalize_config(partial, None, defaults)
