"""Reservation rules enforcement.

All reservation validation logic lives here, separate from the route handlers.
Each rule returns a clear error message or None if the rule passes.
The input-only rules run first and never touch the database; the court
conflict check runs last and is the only one reported as a conflict.
"""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from centrobook.core.config import settings
from centrobook.services.operating_hours import OperatingHoursConfig, resolve_day_rule
from centrobook.services.pricing import PriceBreakdown, validate_override_reason, validate_price_override
from centrobook.services.reservation_store import load_busy_intervals
from centrobook.services.time_normalizer import get_zone, local_datetime

RULE_COURT_CONFLICT = "court_conflict"


class BookingViolation(Exception):
    """Raised when a reservation rule is violated."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"rule": self.rule, "message": self.message}


def _fmt_duration(minutes: int) -> str:
    """Format minutes as hours when evenly divisible by 60, otherwise minutes.

    120 -> "2 hours", 60 -> "1 hour", 90 -> "90 minutes", 0 -> "0 minutes"
    """
    if minutes == 0:
        return "0 minutes"
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minutes"


def validate_reservation_request(
    start: datetime,
    duration_minutes: int,
    config: OperatingHoursConfig,
    now: datetime,
    breakdown: PriceBreakdown | None = None,
    override_amount=None,
    override_reason: str | None = None,
    override_allowed: bool = False,
) -> list[BookingViolation]:
    """Run the input-only rules and return a list of violations (empty = valid)."""
    violations: list[BookingViolation] = []

    v = check_duration(duration_minutes)
    if v:
        violations.append(v)
        return violations

    v = check_not_in_past(start, now)
    if v:
        violations.append(v)

    v = check_within_operating_hours(start, duration_minutes, config)
    if v:
        violations.append(v)

    if override_amount is not None:
        violations.extend(check_price_override(breakdown, override_amount, override_reason, override_allowed))

    return violations


def check_duration(duration_minutes: int) -> BookingViolation | None:
    low, high = settings.min_duration_minutes, settings.max_duration_minutes
    if not low <= duration_minutes <= high:
        return BookingViolation(
            "duration",
            f"Duration {_fmt_duration(duration_minutes)} not allowed. "
            f"Choose between {_fmt_duration(low)} and {_fmt_duration(high)}.",
        )
    return None


def check_not_in_past(start: datetime, now: datetime) -> BookingViolation | None:
    """Cannot book a slot that has already started."""
    if start <= now:
        return BookingViolation("past_reservation", "Cannot book a slot in the past.")
    return None


def check_within_operating_hours(
    start: datetime, duration_minutes: int, config: OperatingHoursConfig
) -> BookingViolation | None:
    """The whole reservation must fit inside one open window of its local day."""
    zone = get_zone(config.timezone)
    local_start = start.astimezone(zone)
    local_end = local_start + timedelta(minutes=duration_minutes)
    day = local_start.date()

    rule = resolve_day_rule(day, config)
    if not rule.is_open:
        return BookingViolation("closed", f"The center is closed on {day.isoformat()}.")

    for window in rule.windows:
        if local_datetime(day, window.start, zone) <= local_start and local_end <= local_datetime(
            day, window.end, zone
        ):
            return None

    hours = ", ".join(f"{w.start}-{w.end}" for w in rule.windows)
    return BookingViolation(
        "operating_hours",
        f"{local_start.strftime('%H:%M')}-{local_end.strftime('%H:%M')} is outside opening hours ({hours}).",
    )


def check_price_override(
    breakdown: PriceBreakdown | None,
    amount,
    reason: str | None,
    allowed: bool,
) -> list[BookingViolation]:
    """Role, justification, then bounds. Nothing here needs the database."""
    if not allowed:
        return [BookingViolation("override_forbidden", "Only center managers can override prices.")]

    error = validate_override_reason(reason)
    if error:
        return [BookingViolation("override_reason", error)]

    if breakdown is None:
        return [BookingViolation("override_unpriced", "Cannot override a reservation without a price.")]

    check = validate_price_override(amount, breakdown.final_total, settings.max_override_percent)
    if not check.is_valid:
        return [BookingViolation("override_bounds", check.error)]
    return []


async def check_court_conflict(
    db: AsyncSession,
    court_id: int,
    start: datetime,
    end: datetime,
    exclude_reservation_id: int | None = None,
) -> BookingViolation | None:
    """No two active reservations (or maintenance) can overlap on the same court."""
    busy = await load_busy_intervals(db, court_id, start, end, exclude_reservation_id)
    conflict = next((b for b in busy if b.blocks and b.start < end and b.end > start), None)

    if conflict:
        what = "under maintenance" if conflict.source == "maintenance" else "already booked"
        return BookingViolation(
            RULE_COURT_CONFLICT,
            f"Court {what} from {conflict.start.isoformat()} to {conflict.end.isoformat()}.",
        )

    return None
