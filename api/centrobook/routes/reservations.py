"""Back-office reservation routes: manual create with overrides, and conflict suggestions.

Everything that can be rejected from the request alone (duration, opening
hours, price override) is rejected with 422 before any row is written. A
court conflict is answered with 409 and a list of nearby free slots instead
of a bare error.
"""

import logging
from datetime import UTC, date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from centrobook.core.database import get_db
from centrobook.core.dependencies import can_override_price, require_staff, works_at
from centrobook.models.center import Court
from centrobook.models.reservation import PaymentMethod, PaymentStatus, Reservation, ReservationStatus
from centrobook.models.user import User
from centrobook.schemas import ReservationCreate, ReservationOut, SuggestionOut, SuggestionRequest, SuggestionsOut
from centrobook.services.booking_rules import check_court_conflict, validate_reservation_request
from centrobook.services.conflicts import Suggestion, suggest_alternatives
from centrobook.services.operating_hours import OperatingHoursConfig
from centrobook.services.pricing import (
    CourtRate,
    PriceBreakdown,
    TaxConfig,
    apply_override,
    calculate,
    court_rules,
    is_member,
    money,
)
from centrobook.services.reservation_store import (
    center_config,
    center_taxes,
    find_user_by_email,
    get_court,
    get_user,
    load_court_availability,
)
from centrobook.services.time_normalizer import local_date, local_hhmm, normalize_to_hhmm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/reservations", tags=["reservations"])

# Recorded at the desk: money is already in hand
SETTLED_METHODS = (
    PaymentMethod.CASH,
    PaymentMethod.TPV,
    PaymentMethod.TRANSFER,
    PaymentMethod.CREDITS,
    PaymentMethod.COURTESY,
)


async def _load_court_for_staff(db: AsyncSession, court_id: int, user: User) -> Court:
    court = await get_court(db, court_id)
    if court is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")
    if not works_at(user, court.center_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not work at this center")
    return court


def _pricer(
    court: Court,
    config: OperatingHoursConfig,
    taxes: TaxConfig | None,
    duration_minutes: int,
    customer: User | None = None,
    lighting_selected: bool = False,
):
    """Price any start time of this court for one customer and duration."""
    rate = CourtRate.from_court(court)
    rules = court_rules(court)

    def price(start: datetime) -> PriceBreakdown:
        return calculate(
            rate,
            start,
            duration_minutes,
            config,
            taxes,
            rules=rules,
            member=is_member(customer, local_date(start, config.timezone)),
            lighting_selected=lighting_selected,
        )

    return price


async def _suggestions(
    db: AsyncSession,
    court: Court,
    config: OperatingHoursConfig,
    pricer,
    day: date,
    hhmm: str,
) -> list[Suggestion]:
    async def fetch(target: date):
        return await load_court_availability(db, court, target, config)

    async def price(start: datetime):
        return pricer(start).final_total

    return await suggest_alternatives(day, hhmm, config.timezone, fetch, price)


def _payment_status(method: PaymentMethod) -> PaymentStatus:
    return PaymentStatus.PAID if method in SETTLED_METHODS else PaymentStatus.PENDING


@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    body: ReservationCreate,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    if (body.user_id is None) == (body.new_user is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"rule": "customer", "message": "Provide either userId or newUser."}],
        )

    court = await _load_court_for_staff(db, body.court_id, staff)
    config = center_config(court.center)
    taxes = center_taxes(court.center)

    customer = None
    if body.user_id is not None:
        customer = await get_user(db, body.user_id)
        if customer is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    start = body.start_time if body.start_time.tzinfo else body.start_time.replace(tzinfo=UTC)
    end = start + timedelta(minutes=body.duration)

    pricer = _pricer(court, config, taxes, body.duration, customer, body.lighting_selected)
    breakdown: PriceBreakdown | None = None
    if body.duration > 0:
        breakdown = pricer(start)

    override = body.pricing_override
    violations = validate_reservation_request(
        start=start,
        duration_minutes=body.duration,
        config=config,
        now=datetime.now(UTC),
        breakdown=breakdown,
        override_amount=override.amount if override else None,
        override_reason=override.reason if override else None,
        override_allowed=can_override_price(staff, court.center_id),
    )
    if violations:
        logger.info(
            "Reservation on court %s at %s rejected: %s",
            court.id,
            start.isoformat(),
            ", ".join(v.rule for v in violations),
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[v.to_dict() for v in violations],
        )

    conflict = await check_court_conflict(db, court.id, start, end)
    if conflict:
        day = local_date(start, config.timezone)
        suggestions = await _suggestions(db, court, config, pricer, day, local_hhmm(start, config.timezone))
        logger.warning(
            "Court %s busy at %s, offering %d alternatives", court.id, start.isoformat(), len(suggestions)
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "error": conflict.message,
                "rule": conflict.rule,
                "suggestions": [s.to_dict() for s in suggestions],
            },
        )

    # Writes start here
    if customer is None:
        customer = await find_user_by_email(db, body.new_user.email)
        if customer is None:
            customer = User(
                email=body.new_user.email.lower(),
                first_name=body.new_user.first_name,
                last_name=body.new_user.last_name,
                phone=body.new_user.phone,
            )
            db.add(customer)
            await db.flush()
            logger.info("Created customer %s for a desk reservation", customer.id)

    total = apply_override(breakdown, override.amount) if override else breakdown.final_total
    payment_status = _payment_status(body.payment.method)

    reservation = Reservation(
        center_id=court.center_id,
        court_id=court.id,
        user_id=customer.id,
        created_by_id=staff.id,
        start_time=start,
        end_time=end,
        duration_minutes=body.duration,
        status=ReservationStatus.PAID if payment_status == PaymentStatus.PAID else ReservationStatus.PENDING,
        payment_method=body.payment.method,
        payment_status=payment_status,
        total_price=total,
        override_amount=money(override.amount) if override else None,
        override_reason=override.reason.strip() if override else None,
        notes=body.notes,
        extra={
            "pricing": breakdown.to_pricing_dict(),
            "payment": {
                "amount": float(body.payment.amount) if body.payment.amount is not None else None,
                "reason": body.payment.reason,
                "details": body.payment.details or {},
            },
            "send_notifications": body.send_notifications,
        },
    )
    db.add(reservation)
    await db.flush()

    if override:
        logger.info(
            "Price override on reservation %s by user %s: %s -> %s (%s)",
            reservation.id,
            staff.id,
            breakdown.final_total,
            total,
            reservation.override_reason,
        )
    logger.info("Reservation %s created on court %s at %s", reservation.id, court.id, start.isoformat())
    return reservation


@router.post("/suggestions", response_model=SuggestionsOut)
async def suggest_reservation_slots(
    body: SuggestionRequest,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Free slots closest to the requested time, same day first, each with its price."""
    hhmm = normalize_to_hhmm(body.time)
    if hhmm is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"rule": "time_format", "message": f"'{body.time}' is not a valid time."}],
        )

    court = await _load_court_for_staff(db, body.court_id, staff)
    config = center_config(court.center)
    duration = body.duration if body.duration and body.duration > 0 else config.slot_minutes

    pricer = _pricer(court, config, center_taxes(court.center), duration)
    suggestions = await _suggestions(db, court, config, pricer, body.date, hhmm)
    return SuggestionsOut(
        court_id=court.id,
        suggestions=[SuggestionOut.model_validate(s.to_dict()) for s in suggestions],
    )
