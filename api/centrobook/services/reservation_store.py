"""Database reads behind availability, pricing and conflict checks.

Everything here is I/O; the decisions are made by the pure modules
(operating_hours, availability, pricing) on what these return.
"""

import logging
from datetime import UTC, date, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from centrobook.core.config import settings
from centrobook.models.center import Center, Court
from centrobook.models.reservation import (
    FREEING_STATUSES,
    MaintenanceSchedule,
    MaintenanceStatus,
    Reservation,
)
from centrobook.models.user import User
from centrobook.services.availability import BusyInterval, Slot, compute_slots
from centrobook.services.operating_hours import (
    InvalidOperatingHours,
    OperatingHoursConfig,
    config_from_center,
    normalize_config,
)
from centrobook.services.pricing import TaxConfig
from centrobook.services.time_normalizer import local_window

logger = logging.getLogger(__name__)


async def get_court(db: AsyncSession, court_id: int) -> Court | None:
    """Active court with its center loaded."""
    result = await db.execute(
        select(Court)
        .options(selectinload(Court.center))
        .where(Court.id == court_id, Court.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_center(db: AsyncSession, center_id: int) -> Center | None:
    result = await db.execute(select(Center).where(Center.id == center_id, Center.is_active.is_(True)))
    return result.scalar_one_or_none()


def center_config(center: Center) -> OperatingHoursConfig:
    """The center's operating hours. Unreadable stored settings fall back to the defaults."""
    defaults = settings.hours_defaults()
    try:
        return config_from_center(center, defaults)
    except InvalidOperatingHours as e:
        logger.error(
            "Stored operating hours of center %s are invalid (%s: %s), using defaults", center.id, e.field, e.message
        )
        return normalize_config({}, None, defaults)


def center_taxes(center: Center) -> TaxConfig | None:
    return TaxConfig.from_settings(center.settings)


async def load_busy_intervals(
    db: AsyncSession,
    court_id: int,
    start: datetime,
    end: datetime,
    exclude_reservation_id: int | None = None,
) -> list[BusyInterval]:
    """Reservations and maintenance on a court that intersect [start, end)."""
    query = select(Reservation.id, Reservation.start_time, Reservation.end_time, Reservation.status).where(
        Reservation.court_id == court_id,
        Reservation.status.not_in(FREEING_STATUSES),
        Reservation.start_time < end,
        Reservation.end_time > start,
    )
    if exclude_reservation_id is not None:
        query = query.where(Reservation.id != exclude_reservation_id)
    reservations = await db.execute(query)

    busy = [
        BusyInterval(court_id=court_id, start=row.start_time, end=row.end_time, status=row.status.value)
        for row in reservations.all()
    ]

    maintenance = await db.execute(
        select(MaintenanceSchedule).where(
            MaintenanceSchedule.court_id == court_id,
            MaintenanceSchedule.status.in_((MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS)),
            # [started or scheduled, completed or open-ended) intersects [start, end)
            func.coalesce(MaintenanceSchedule.started_at, MaintenanceSchedule.scheduled_at) < end,
            or_(MaintenanceSchedule.completed_at.is_(None), MaintenanceSchedule.completed_at > start),
        )
    )
    for m in maintenance.scalars().all():
        m_start = m.started_at or m.scheduled_at or start
        m_end = m.completed_at or end
        busy.append(BusyInterval(court_id=court_id, start=m_start, end=m_end, source="maintenance"))

    return busy


async def load_court_availability(
    db: AsyncSession,
    court: Court,
    day: date,
    config: OperatingHoursConfig | None = None,
    now: datetime | None = None,
) -> list[Slot]:
    """Slots for one court on one local calendar day."""
    config = config or center_config(court.center)
    day_start, day_end = local_window(day, "00:00", "00:00", config.timezone)
    busy = await load_busy_intervals(db, court.id, day_start, day_end)
    return compute_slots(court.id, day, config, busy, now=now or datetime.now(UTC))


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
    return result.scalar_one_or_none()


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()
