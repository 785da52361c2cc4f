"""
User Preference Endpoints

    GET /api/user/preferences  - Stored preferences merged over defaults
    PUT /api/user/preferences  - Partial update
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import get_current_user
from tableside.core.rate_limit import GENERAL_LIMIT, limiter
from tableside.database import get_db
from tableside.models import User
from tableside.schemas import PreferencesUpdate, UserPreferences

router = APIRouter(prefix="/api/user", tags=["User"])

NULLABLE_PREFERENCES = {"budget", "spice_level"}


def _effective_preferences(user: User) -> dict:
    return UserPreferences(**(user.preferences or {})).model_dump()


@router.get("/preferences")
async def get_preferences(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"success": True, "data": _effective_preferences(user)}


@router.put("/preferences")
@limiter.limit(GENERAL_LIMIT)
async def update_preferences(
    request: Request,
    payload: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    merged = _effective_preferences(user)
    for key, value in payload.model_dump(exclude_unset=True).items():
        # budget and spice_level may be cleared; other keys keep their value on null
        if value is not None or key in NULLABLE_PREFERENCES:
            merged[key] = value
    user.preferences = UserPreferences(**merged).model_dump()
    await db.commit()
    return {"success": True, "message": "Preferences updated", "data": user.preferences}
