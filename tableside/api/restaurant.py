"""
Restaurant Profile Endpoints

    GET /api/restaurant            - Public profile and settings
    PUT /api/restaurant/settings   - Update business settings (admin)
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import require_admin
from tableside.core.config import get_settings
from tableside.core.rate_limit import ADMIN_LIMIT, limiter
from tableside.database import get_db
from tableside.models import Restaurant, User
from tableside.schemas import RestaurantResponse, RestaurantSettings, RestaurantSettingsUpdate

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/restaurant", tags=["Restaurant"])


async def _get_or_404(db: AsyncSession, restaurant_id: Optional[str]) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id or settings.default_restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


@router.get("")
async def get_restaurant(
    restaurant_id: Optional[str] = Query(None, max_length=50),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    restaurant = await _get_or_404(db, restaurant_id)
    data = RestaurantResponse.model_validate(restaurant).model_dump(mode="json")
    data["settings"] = RestaurantSettings(**(restaurant.settings or {})).model_dump(mode="json")
    return {"success": True, "data": data}


@router.put("/settings")
@limiter.limit(ADMIN_LIMIT)
async def update_settings(
    request: Request,
    payload: RestaurantSettingsUpdate,
    restaurant_id: Optional[str] = Query(None, max_length=50),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    restaurant = await _get_or_404(db, restaurant_id)
    merged = RestaurantSettings(**(restaurant.settings or {})).model_dump(mode="json")
    merged.update({
        k: v for k, v in payload.model_dump(mode="json", exclude_unset=True).items()
        if v is not None or k == "cancellation_policy"
    })
    restaurant.settings = RestaurantSettings(**merged).model_dump(mode="json")
    await db.commit()

    logger.info(f"⚙️ Restaurant '{restaurant.id}' settings updated by admin #{admin.id}")
    return {"success": True, "message": "Settings updated", "data": restaurant.settings}
