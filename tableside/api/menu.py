"""
Menu Endpoints

    GET    /api/menu        - Browse with filters, sorting and pagination
    GET    /api/menu/{id}   - Single item
    POST   /api/menu        - Create item (admin)
    PUT    /api/menu/{id}   - Partial update (admin)
    DELETE /api/menu/{id}   - Delete item (admin)

Column filters run in SQL. Tag and free-text search also look inside the
JSON ``tags``/``ingredients`` lists, so they are applied in Python before
paginating; a single restaurant's menu is small enough for that.
"""

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import pagination_meta, require_admin
from tableside.core.config import get_settings
from tableside.core.rate_limit import ADMIN_LIMIT, GENERAL_LIMIT, limiter
from tableside.database import get_db
from tableside.models import MenuItem, User
from tableside.schemas import MenuItemCreate, MenuItemResponse, MenuItemUpdate

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/menu", tags=["Menu"])

NULLABLE_FIELDS = {"image_url", "nutritional_info", "preparation_time"}


def _serialize(item: MenuItem) -> dict:
    return MenuItemResponse.model_validate(item).model_dump(mode="json")


def _matches_search(item: MenuItem, needle: str) -> bool:
    haystack = [item.name, item.description or ""] + list(item.ingredients or [])
    return any(needle in text.lower() for text in haystack)


async def _get_item_or_404(db: AsyncSession, item_id: int) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Menu item #{item_id} not found")
    return item


async def _name_taken(db: AsyncSession, restaurant_id: str, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(MenuItem.id).where(
        MenuItem.restaurant_id == restaurant_id,
        MenuItem.name == name,
    )
    if exclude_id is not None:
        query = query.where(MenuItem.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


@router.get("")
@limiter.limit(GENERAL_LIMIT)
async def list_menu(
    request: Request,
    category: Optional[str] = Query(None, max_length=50),
    tags: Optional[str] = Query(None, description="Comma-separated; matches any"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=100),
    active: bool = Query(True),
    vegetarian: Optional[bool] = Query(None),
    vegan: Optional[bool] = Query(None),
    gluten_free: Optional[bool] = Query(None),
    spice_level: Optional[int] = Query(None, ge=0, le=5, description="Maximum spice level"),
    restaurant_id: Optional[str] = Query(None, max_length=50),
    sort_by: Literal["name", "price", "popularity", "newest"] = Query("name"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    query = select(MenuItem).where(
        MenuItem.restaurant_id == (restaurant_id or settings.default_restaurant_id),
        MenuItem.active.is_(active),
    )

    if category:
        query = query.where(MenuItem.category.ilike(f"%{category.strip()}%"))
    if min_price is not None:
        query = query.where(MenuItem.price >= min_price)
    if max_price is not None:
        query = query.where(MenuItem.price <= max_price)
    if vegetarian is not None:
        query = query.where(MenuItem.is_vegetarian.is_(vegetarian))
    if vegan is not None:
        query = query.where(MenuItem.is_vegan.is_(vegan))
    if gluten_free is not None:
        query = query.where(MenuItem.is_gluten_free.is_(gluten_free))
    if spice_level is not None:
        query = query.where(MenuItem.spice_level <= spice_level)

    descending = sort_order == "desc"
    if sort_by == "price":
        order = [MenuItem.price.desc() if descending else MenuItem.price.asc(), MenuItem.name]
    elif sort_by == "popularity":
        order = [MenuItem.is_popular.desc(), MenuItem.sort_order, MenuItem.name]
    elif sort_by == "newest":
        order = [MenuItem.created_at.desc(), MenuItem.id.desc()]
    else:
        order = [MenuItem.name.desc() if descending else MenuItem.name.asc()]

    result = await db.execute(query.order_by(*order))
    items = list(result.scalars().all())

    if tags:
        wanted = {t.strip().lower() for t in tags.split(",") if t.strip()}
        items = [item for item in items if wanted & set(item.tags or [])]
    if search:
        needle = search.strip().lower()
        items = [item for item in items if _matches_search(item, needle)]

    total = len(items)
    start = (page - 1) * limit
    page_items = items[start:start + limit]

    return {
        "success": True,
        "data": [_serialize(item) for item in page_items],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/{item_id}")
async def get_menu_item(item_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    item = await _get_item_or_404(db, item_id)
    return {"success": True, "data": _serialize(item)}


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(ADMIN_LIMIT)
async def create_menu_item(
    request: Request,
    payload: MenuItemCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    data = payload.model_dump(mode="json")
    data["restaurant_id"] = payload.restaurant_id or settings.default_restaurant_id

    if await _name_taken(db, data["restaurant_id"], payload.name):
        raise HTTPException(status_code=409, detail="Menu item with this name already exists")

    item = MenuItem(**data)
    db.add(item)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Menu item with this name already exists")
    await db.refresh(item)

    logger.info(f"🍽️ Menu item #{item.id} '{item.name}' created by admin #{admin.id}")
    return {"success": True, "message": "Menu item created", "data": _serialize(item)}


@router.put("/{item_id}")
@limiter.limit(ADMIN_LIMIT)
async def update_menu_item(
    request: Request,
    item_id: int,
    payload: MenuItemUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    item = await _get_item_or_404(db, item_id)
    changes = payload.model_dump(mode="json", exclude_unset=True)

    if changes.get("name") and changes["name"] != item.name:
        if await _name_taken(db, item.restaurant_id, changes["name"], exclude_id=item.id):
            raise HTTPException(status_code=409, detail="Menu item with this name already exists")

    for field, value in changes.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(item, field, value)

    await db.commit()
    await db.refresh(item)

    logger.info(f"🍽️ Menu item #{item.id} updated by admin #{admin.id}: {sorted(changes)}")
    return {"success": True, "message": "Menu item updated", "data": _serialize(item)}


@router.delete("/{item_id}")
@limiter.limit(ADMIN_LIMIT)
async def delete_menu_item(
    request: Request,
    item_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    item = await _get_item_or_404(db, item_id)
    await db.delete(item)
    await db.commit()

    logger.info(f"🗑️ Menu item #{item_id} deleted by admin #{admin.id}")
    return {"success": True, "message": "Menu item deleted"}
