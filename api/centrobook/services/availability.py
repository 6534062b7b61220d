"""Slot generation for court availability.

Pure calculation module with no database or FastAPI imports.
Slots are cut from the center's open windows for the day and checked against
the court's busy intervals (reservations and maintenance) using half-open
interval overlap, the same rule booking_rules.check_court_conflict applies.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from centrobook.services.operating_hours import OperatingHoursConfig, resolve_day_rule
from centrobook.services.time_normalizer import get_zone, local_datetime, local_hhmm

# Statuses that free the court again
NON_BLOCKING_STATUSES = frozenset({"CANCELLED", "NO_SHOW"})


@dataclass(frozen=True)
class BusyInterval:
    """A (court, start, end, status) tuple from the reservation store."""

    court_id: int
    start: datetime
    end: datetime
    status: str = "PENDING"
    source: str = "reservation"  # or "maintenance"

    @property
    def blocks(self) -> bool:
        return self.status.upper() not in NON_BLOCKING_STATUSES


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    available: bool

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat(), "available": self.available}


@dataclass(frozen=True)
class DurationWindow:
    start: datetime
    end: datetime
    duration_minutes: int
    available: bool
    label: str


@dataclass(frozen=True)
class AvailabilitySummary:
    total: int
    available: int
    occupied: int


def compute_slots(
    court_id: int,
    day: date,
    config: OperatingHoursConfig,
    busy: Iterable[BusyInterval],
    now: datetime | None = None,
) -> list[Slot]:
    """Generate all slot_minutes-wide slots for a court on a given date.

    Returns slots in ascending order. A trailing bucket shorter than
    slot_minutes is dropped. A slot touching a reservation only at a boundary
    stays available. If `now` is given, slots that have already started are
    marked unavailable.
    """
    rule = resolve_day_rule(day, config)
    if not rule.is_open:
        return []

    zone = get_zone(config.timezone)
    step = timedelta(minutes=config.slot_minutes)
    blocking = [
        (b.start.astimezone(UTC), b.end.astimezone(UTC)) for b in busy if b.court_id == court_id and b.blocks
    ]

    slots: list[Slot] = []
    last_end: datetime | None = None

    for window in rule.windows:
        current = local_datetime(day, window.start, zone)
        end_of_window = local_datetime(day, window.end, zone)

        while current + step <= end_of_window:
            slot_start = current.astimezone(UTC)
            slot_end = (current + step).astimezone(UTC)
            current += step

            # Overlapping exception ranges: keep the earlier slot
            if slot_end <= slot_start or (last_end is not None and slot_start < last_end):
                continue

            has_conflict = any(b_start < slot_end and b_end > slot_start for b_start, b_end in blocking)
            is_past = now is not None and slot_start <= now

            slots.append(Slot(start=slot_start, end=slot_end, available=not has_conflict and not is_past))
            last_end = slot_end

    return slots


def duration_windows(slots: Sequence[Slot], duration_minutes: int, timezone: str) -> list[DurationWindow]:
    """Lay a booking of `duration_minutes` on the slot grid, one candidate per slot start.

    A candidate is emitted only if contiguous slots cover it entirely; it is
    available only if every covered slot is.
    """
    if duration_minutes <= 0:
        raise ValueError("Duration must be positive.")

    length = timedelta(minutes=duration_minutes)
    windows: list[DurationWindow] = []

    for i, first in enumerate(slots):
        end = first.start + length
        covered_until = first.start
        available = True
        j = i
        while j < len(slots) and covered_until < end:
            slot = slots[j]
            if slot.start != covered_until:
                break
            available = available and slot.available
            covered_until = slot.end
            j += 1

        if covered_until < end:
            continue

        windows.append(
            DurationWindow(
                start=first.start,
                end=end,
                duration_minutes=duration_minutes,
                available=available,
                label=f"{local_hhmm(first.start, timezone)} - {local_hhmm(end, timezone)}",
            )
        )

    return windows


def summarize(slots: Iterable[Slot | DurationWindow]) -> AvailabilitySummary:
    slots = list(slots)
    free = sum(1 for s in slots if s.available)
    return AvailabilitySummary(total=len(slots), available=free, occupied=len(slots) - free)
