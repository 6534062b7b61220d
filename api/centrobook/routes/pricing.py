"""Price calculation route."""

import logging
from datetime import UTC

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from centrobook.core.database import get_db
from centrobook.core.dependencies import require_staff
from centrobook.models.user import User
from centrobook.schemas import PricingRequest, PricingResponse
from centrobook.services.pricing import CourtRate, calculate, court_rules, is_member
from centrobook.services.reservation_store import center_config, center_taxes, get_court, get_user
from centrobook.services.time_normalizer import local_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/calculate", response_model=PricingResponse)
async def calculate_price(
    body: PricingRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    court = await get_court(db, body.court_id)
    if court is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Court not found")

    config = center_config(court.center)
    customer = await get_user(db, body.user_id) if body.user_id is not None else None
    start = body.start_time if body.start_time.tzinfo else body.start_time.replace(tzinfo=UTC)

    breakdown = calculate(
        CourtRate.from_court(court),
        start,
        body.duration,
        config,
        center_taxes(court.center),
        rules=court_rules(court),
        member=is_member(customer, local_date(start, config.timezone)),
        lighting_selected=body.lighting_selected,
    )
    logger.debug(
        "Priced court %s at %s for %smin: %s", court.id, body.start_time.isoformat(), body.duration, breakdown.final_total
    )
    return PricingResponse.model_validate({"pricing": breakdown.to_pricing_dict()})
