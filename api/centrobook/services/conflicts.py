"""Alternative slots after a scheduling conflict.

When a reservation collides with an existing one, the operator is offered the
open slots closest in time of day to what they asked for: the same date
first, and the next date only if the requested one has nothing free. Ranking
happens before pricing, so the order never depends on which price resolves
first.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from centrobook.services.availability import Slot
from centrobook.services.time_normalizer import local_hhmm, minute_of_day, require_hhmm, to_minutes

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 8

SlotFetcher = Callable[[date], Awaitable[Sequence[Slot]]]
SlotPricer = Callable[[datetime], Awaitable[Decimal | None]]


@dataclass(frozen=True)
class Suggestion:
    day: date
    start: datetime
    end: datetime
    label: str
    distance_minutes: int
    price: Decimal | None = None

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "label": self.label,
            "distance_minutes": self.distance_minutes,
            "price": float(self.price) if self.price is not None else None,
        }


def rank_by_proximity(
    slots: Sequence[Slot], desired_minute: int, timezone: str, limit: int = MAX_SUGGESTIONS
) -> list[tuple[Slot, int]]:
    """Available slots ordered by |minute of day - desired_minute|, ties kept in slot order."""
    scored = [(slot, abs(minute_of_day(slot.start, timezone) - desired_minute)) for slot in slots if slot.available]
    scored.sort(key=lambda pair: pair[1])
    return scored[:limit]


async def suggest_alternatives(
    requested_day: date,
    requested_hhmm: str,
    timezone: str,
    fetch_slots: SlotFetcher,
    price_slot: SlotPricer,
    limit: int = MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """Return up to `limit` priced alternatives, closest time of day first.

    Rolls forward one day at most. A suggestion whose price cannot be
    calculated is still returned, with price=None.
    """
    desired = to_minutes(require_hhmm(requested_hhmm))

    day = requested_day
    slots = await fetch_slots(day)
    if not any(s.available for s in slots):
        day = requested_day + timedelta(days=1)
        logger.info("No free slots on %s, looking at %s", requested_day, day)
        slots = await fetch_slots(day)

    ranked = rank_by_proximity(slots, desired, timezone, limit)

    prices = await asyncio.gather(*(price_slot(slot.start) for slot, _ in ranked), return_exceptions=True)

    suggestions: list[Suggestion] = []
    for (slot, distance), price in zip(ranked, prices, strict=True):
        if isinstance(price, BaseException):
            if not isinstance(price, Exception):
                raise price
            logger.warning("Could not price suggestion at %s: %s", slot.start.isoformat(), price)
            price = None
        suggestions.append(
            Suggestion(
                day=day,
                start=slot.start,
                end=slot.end,
                label=local_hhmm(slot.start, timezone),
                distance_minutes=distance,
                price=price,
            )
        )
    return suggestions
