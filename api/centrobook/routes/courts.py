"""Court availability routes (public, no auth required)."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from centrobook.core.database import get_db
from centrobook.models.center import Court
from centrobook.schemas import AvailabilityOut, DurationWindowOut, DurationWindowsOut, SlotOut, SummaryOut
from centrobook.services.availability import duration_windows, summarize
from centrobook.services.reservation_store import center_config, get_court, load_court_availability

router = APIRouter(prefix="/courts", tags=["courts"])


async def _load_court(db: AsyncSession, court_id: int) -> Court:
    court = await get_court(db, court_id)
    if court is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")
    return court


@router.get("/{court_id}/availability", response_model=AvailabilityOut)
async def get_court_availability(
    court_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    db: AsyncSession = Depends(get_db),
):
    """All slots of the day, in order, with the free/occupied counts."""
    court = await _load_court(db, court_id)
    slots = await load_court_availability(db, court, query_date)

    return AvailabilityOut(
        court_id=court.id,
        date=query_date,
        slots=[SlotOut(start=s.start, end=s.end, available=s.available) for s in slots],
        summary=SummaryOut.model_validate(summarize(slots)),
    )


@router.get("/{court_id}/availability/windows", response_model=DurationWindowsOut)
async def get_duration_windows(
    court_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    duration: int = Query(..., gt=0, description="Booking length in minutes"),
    db: AsyncSession = Depends(get_db),
):
    """Every start time a booking of `duration` minutes could take, labelled "HH:MM - HH:MM"."""
    court = await _load_court(db, court_id)
    config = center_config(court.center)
    slots = await load_court_availability(db, court, query_date, config)
    windows = duration_windows(slots, duration, config.timezone)

    return DurationWindowsOut(
        court_id=court.id,
        date=query_date,
        duration=duration,
        windows=[DurationWindowOut.model_validate(w) for w in windows],
        summary=SummaryOut.model_validate(summarize(windows)),
    )
