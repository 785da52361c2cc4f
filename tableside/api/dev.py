"""
Development Tools

    POST /api/dev/seed - Load seed data (development only)
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import get_settings
from tableside.database import get_db
from tableside.seed import seed_database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dev", tags=["Development"])


@router.post("/seed")
async def seed(
    db: AsyncSession = Depends(get_db),
    x_dev_seed_key: Optional[str] = Header(None, alias="x-dev-seed-key"),
) -> dict[str, Any]:
    settings = get_settings()
    if not settings.is_development:
        raise HTTPException(status_code=403, detail="Seeding is only available in development mode")
    if settings.dev_seed_key and x_dev_seed_key != settings.dev_seed_key:
        raise HTTPException(status_code=401, detail="Invalid seed key")

    created = await seed_database(db)
    return {"success": True, "message": "Database seeded", "data": created}
