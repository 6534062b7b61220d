"""Center operating-hours routes.

The stored config is always complete: a PUT is a partial update normalized
against what is already saved, then written back in full.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from centrobook.core.database import get_db
from centrobook.core.dependencies import require_center_admin
from centrobook.models.center import Center
from centrobook.models.user import User
from centrobook.schemas import OperatingHoursIn, OperatingHoursOut
from centrobook.services.operating_hours import InvalidOperatingHours, OperatingHoursConfig, normalize_config
from centrobook.services.reservation_store import center_config, get_center

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/centers", tags=["centers"])


def _out(center_id: int, config: OperatingHoursConfig) -> OperatingHoursOut:
    return OperatingHoursOut(center_id=center_id, **config.to_dict())


async def _load_center(db: AsyncSession, center_id: int) -> Center:
    center = await get_center(db, center_id)
    if center is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Center not found")
    return center


@router.get("/{center_id}/operating-hours", response_model=OperatingHoursOut)
async def get_operating_hours(center_id: int, db: AsyncSession = Depends(get_db)):
    center = await _load_center(db, center_id)
    return _out(center.id, center_config(center))


@router.put("/{center_id}/operating-hours", response_model=OperatingHoursOut)
async def update_operating_hours(
    center_id: int,
    body: OperatingHoursIn,
    user: User = Depends(require_center_admin),
    db: AsyncSession = Depends(get_db),
):
    center = await _load_center(db, center_id)
    previous = center_config(center)

    try:
        config = normalize_config(body.model_dump(exclude_none=True), previous)
    except InvalidOperatingHours as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"rule": "operating_hours", "field": e.field, "message": e.message}],
        ) from None

    stored = config.to_dict()
    center.settings = {
        **(center.settings or {}),
        "operating_hours": stored["weekly_schedule"],
        "slot_minutes": stored["slot_minutes"],
        "exceptions": stored["exceptions"],
    }
    center.timezone = config.timezone
    center.day_start = config.day_start
    center.night_start = config.night_start
    await db.flush()

    logger.info(
        "Operating hours of center %s updated by user %s (slot=%smin, tz=%s, %d exceptions)",
        center.id,
        user.id,
        config.slot_minutes,
        config.timezone,
        len(config.exceptions),
    )
    return _out(center.id, config)
