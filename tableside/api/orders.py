"""
Order Endpoints

    POST   /api/orders                 - Place an order from a cart
    GET    /api/orders                 - Filtered order list (staff)
    GET    /api/orders/my-orders       - Caller's order history
    GET    /api/orders/{id}            - Single order (owner or staff)
    PATCH  /api/orders/{id}/status     - Advance the lifecycle (staff)
    POST   /api/orders/{id}/tip        - Change the tip (owner)
    POST   /api/orders/{id}/refund     - Refund a paid order (admin)
    DELETE /api/orders/{id}            - Delete an order (admin)
"""

import logging
from datetime import date, datetime, time
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import (
    get_current_user,
    get_optional_user,
    pagination_meta,
    request_origin,
    require_admin,
    require_staff,
)
from tableside.core.rate_limit import ADMIN_LIMIT, GENERAL_LIMIT, limiter
from tableside.core.security import has_role
from tableside.database import get_db
from tableside.models import Order, OrderStatus, PaymentStatus, User, UserRole
from tableside.schemas import (
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    RefundRequest,
    TipUpdate,
)
from tableside.services.orders import (
    OrderError,
    apply_tip,
    place_order,
    refund_order,
    transition_status,
)
from tableside.services.payment import BasePaymentService, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])

SORT_COLUMNS = {
    "created_at": Order.created_at,
    "total": Order.total,
    "status": Order.status,
}


def serialize_order(order: Order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


def _can_view(user: User, order: Order) -> bool:
    return has_role(user.role, UserRole.STAFF) or order.user_id == user.id


async def _get_order_or_404(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return order


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(GENERAL_LIMIT)
async def create_order(
    request: Request,
    payload: OrderCreate,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """
    Place an order. Card and wallet payments also open a hosted checkout
    session; the response carries its URL.
    """
    try:
        order, checkout = await place_order(db, payment_service, payload, user, request_origin(request))
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return {
        "success": True,
        "message": "Order placed successfully!",
        "data": serialize_order(order),
        "checkout": {"session_id": checkout.session_id, "url": checkout.url} if checkout else None,
    }


@router.get("")
@limiter.limit(GENERAL_LIMIT)
async def list_orders(
    request: Request,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    customer_email: Optional[str] = Query(None, max_length=255),
    sort_by: Literal["created_at", "total", "status"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Staff order board with filters and pagination."""
    conditions = []
    if status_filter is not None:
        conditions.append(Order.status == status_filter)
    if payment_status is not None:
        conditions.append(Order.payment_status == payment_status)
    if date_from is not None:
        conditions.append(Order.created_at >= datetime.combine(date_from, time.min))
    if date_to is not None:
        conditions.append(Order.created_at <= datetime.combine(date_to, time.max))
    if customer_email:
        conditions.append(Order.customer_email.ilike(f"%{customer_email.strip().lower()}%"))

    total_result = await db.execute(select(func.count(Order.id)).where(*conditions))
    total = total_result.scalar() or 0

    column = SORT_COLUMNS[sort_by]
    ordering = column.desc() if sort_order == "desc" else column.asc()
    result = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(ordering, Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return {
        "success": True,
        "data": [serialize_order(order) for order in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/my-orders")
async def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Order history: orders placed while signed in, plus guest orders under
    the account's email once that email has been verified.
    """
    owned = Order.user_id == user.id
    if user.email_verified:
        owned = owned | (Order.customer_email == user.email)

    total_result = await db.execute(select(func.count(Order.id)).where(owned))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(owned)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "success": True,
        "data": [serialize_order(order) for order in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await _get_order_or_404(db, order_id)
    if not _can_view(user, order):
        raise HTTPException(status_code=403, detail="Not allowed to view this order")
    return {"success": True, "data": serialize_order(order)}


@router.patch("/{order_id}/status")
@limiter.limit(ADMIN_LIMIT)
async def update_order_status(
    request: Request,
    order_id: int,
    payload: OrderStatusUpdate,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await _get_order_or_404(db, order_id)
    previous = OrderStatus(order.status)

    try:
        changed = transition_status(order, payload.status)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if payload.estimated_time is not None:
        order.estimated_time = payload.estimated_time
    if payload.notes is not None:
        order.notes = payload.notes

    await db.commit()
    await db.refresh(order)

    if changed:
        logger.info(
            f"📦 Order #{order.id} {previous.value} → {payload.status.value} "
            f"by {staff.role.value} #{staff.id}"
        )
    return {"success": True, "message": "Order status updated", "data": serialize_order(order)}


@router.post("/{order_id}/tip")
@limiter.limit(GENERAL_LIMIT)
async def add_tip(
    request: Request,
    order_id: int,
    payload: TipUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await _get_order_or_404(db, order_id)
    if order.user_id != user.id and not has_role(user.role, UserRole.STAFF):
        raise HTTPException(status_code=403, detail="Not allowed to change this order")

    try:
        totals = apply_tip(order, payload.tip)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await db.commit()
    await db.refresh(order)
    return {"success": True, "message": "Tip updated", "data": {**totals.to_dict(), "order_id": order.id}}


@router.post("/{order_id}/refund")
@limiter.limit(ADMIN_LIMIT)
async def refund(
    request: Request,
    order_id: int,
    payload: RefundRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    order = await _get_order_or_404(db, order_id)
    try:
        amount = await refund_order(payment_service, order, payload.amount, payload.reason)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await db.commit()
    await db.refresh(order)

    logger.info(f"💸 Refund of ${amount:.2f} on order #{order.id} by admin #{admin.id}")
    return {"success": True, "message": "Order refunded", "data": serialize_order(order)}


@router.delete("/{order_id}")
@limiter.limit(ADMIN_LIMIT)
async def delete_order(
    request: Request,
    order_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await _get_order_or_404(db, order_id)
    await db.delete(order)
    await db.commit()

    logger.info(f"🗑️ Order #{order_id} deleted by admin #{admin.id}")
    return {"success": True, "message": "Order deleted"}
