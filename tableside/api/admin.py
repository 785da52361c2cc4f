"""
Admin Back-Office Endpoints

    GET    /api/admin/users         - List users (role filter, pagination)
    POST   /api/admin/users         - Create a user (defaults to admin)
    GET    /api/admin/users/{id}    - Single user
    PUT    /api/admin/users/{id}    - Partial update (PATCH also accepted)
    DELETE /api/admin/users/{id}    - Delete a user
    GET    /api/admin/dashboard     - Aggregated statistics

Menu and order management live on their own routers behind the same
admin/staff role checks.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import pagination_meta, require_admin, require_staff
from tableside.api.orders import serialize_order
from tableside.core.config import get_settings
from tableside.core.rate_limit import ADMIN_LIMIT, limiter
from tableside.core.security import hash_password
from tableside.database import get_db
from tableside.models import (
    AISession,
    Order,
    OrderStatus,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    User,
    UserRole,
    utcnow,
)
from tableside.schemas import AdminUserCreate, AdminUserUpdate, UserPreferences, UserResponse

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def _serialize(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User #{user_id} not found")
    return user


async def _email_in_use(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query)).first() is not None


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@router.get("/users")
@limiter.limit(ADMIN_LIMIT)
async def list_users(
    request: Request,
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    conditions = [User.role == role] if role is not None else []
    total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "success": True,
        "data": [_serialize(u) for u in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


@router.post("/users", status_code=status.HTTP_201_CREATED)
@limiter.limit(ADMIN_LIMIT)
async def create_user(
    request: Request,
    payload: AdminUserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    email = payload.email.lower()
    if await _email_in_use(db, email):
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=email,
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        role=payload.role,
        phone=payload.phone,
        preferences=UserPreferences().model_dump(),
        email_verified=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"👤 {user.role.value} #{user.id} created by admin #{admin.id}")
    return {"success": True, "message": "User created", "data": _serialize(user)}


@router.get("/users/{user_id}")
async def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return {"success": True, "data": _serialize(await _get_user_or_404(db, user_id))}


@router.put("/users/{user_id}")
@router.patch("/users/{user_id}")
@limiter.limit(ADMIN_LIMIT)
async def update_user(
    request: Request,
    user_id: int,
    payload: AdminUserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    user = await _get_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("email"):
        email = changes["email"].lower()
        if await _email_in_use(db, email, exclude_id=user.id):
            raise HTTPException(status_code=409, detail="Email already in use by another user")
        user.email = email
    if changes.get("name"):
        user.name = changes["name"].strip()
    if changes.get("password"):
        user.password_hash = hash_password(changes["password"])
    if changes.get("role") is not None:
        if user.id == admin.id and changes["role"] != UserRole.ADMIN:
            raise HTTPException(status_code=400, detail="Admins cannot demote themselves")
        user.role = changes["role"]
    if "phone" in changes:
        user.phone = changes["phone"]
    if changes.get("is_active") is not None:
        if user.id == admin.id and not changes["is_active"]:
            raise HTTPException(status_code=400, detail="Admins cannot deactivate themselves")
        user.is_active = changes["is_active"]

    await db.commit()
    await db.refresh(user)

    logger.info(f"👤 User #{user.id} updated by admin #{admin.id}: {sorted(changes)}")
    return {"success": True, "message": "User updated", "data": _serialize(user)}


@router.delete("/users/{user_id}")
@limiter.limit(ADMIN_LIMIT)
async def delete_user(
    request: Request,
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete themselves")
    user = await _get_user_or_404(db, user_id)
    await db.delete(user)
    await db.commit()

    logger.info(f"🗑️ User #{user_id} deleted by admin #{admin.id}")
    return {"success": True, "message": "User deleted"}


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/dashboard")
async def dashboard_data(
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get aggregated dashboard statistics."""

    total_orders = (await db.execute(select(func.count(Order.id)))).scalar() or 0

    pending_orders = (await db.execute(
        select(func.count(Order.id)).where(
            Order.status.in_([OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING])
        )
    )).scalar() or 0

    delivered_orders = (await db.execute(
        select(func.count(Order.id)).where(Order.status == OrderStatus.DELIVERED)
    )).scalar() or 0

    cancelled_orders = (await db.execute(
        select(func.count(Order.id)).where(Order.status == OrderStatus.CANCELLED)
    )).scalar() or 0

    # Revenue counts settled payments only
    today_start = datetime.combine(utcnow().date(), time.min)
    today_revenue = (await db.execute(
        select(func.sum(Order.total)).where(
            Order.created_at >= today_start,
            Order.payment_status == PaymentStatus.COMPLETED,
        )
    )).scalar() or 0.0

    avg_order_value = (await db.execute(
        select(func.avg(Order.total)).where(Order.status != OrderStatus.CANCELLED)
    )).scalar() or 0.0

    cancellation_rate = round(cancelled_orders / total_orders * 100, 1) if total_orders else 0.0

    upcoming_reservations = (await db.execute(
        select(func.count(Reservation.id)).where(
            Reservation.date >= date.today().isoformat(),
            Reservation.status.in_([ReservationStatus.PENDING, ReservationStatus.CONFIRMED]),
        )
    )).scalar() or 0

    active_ai_sessions = (await db.execute(
        select(func.count(AISession.id)).where(AISession.is_active.is_(True))
    )).scalar() or 0

    recent_result = await db.execute(
        select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(10)
    )

    return {
        "success": True,
        "data": {
            "total_orders": total_orders,
            "pending_orders": pending_orders,
            "delivered_orders": delivered_orders,
            "today_revenue": round(float(today_revenue), 2),
            "avg_order_value": round(float(avg_order_value), 2),
            "cancellation_rate": cancellation_rate,
            "upcoming_reservations": upcoming_reservations,
            "active_ai_sessions": active_ai_sessions,
            "environment": settings.env_mode.value,
            "recent_orders": [serialize_order(o) for o in recent_result.scalars().all()],
        },
    }
