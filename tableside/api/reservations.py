"""
Reservation Endpoints

    POST  /api/reservations                 - Book a table
    GET   /api/reservations                 - Recent reservations (staff)
    GET   /api/reservations/mine            - Caller's reservations
    GET   /api/reservations/availability    - Remaining capacity for a slot
    PATCH /api/reservations/{id}/status     - Confirm / seat / complete (staff)
    POST  /api/reservations/{id}/cancel     - Cancel (owner or staff)
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import get_current_user, get_optional_user, require_staff
from tableside.core.config import get_settings
from tableside.core.rate_limit import ADMIN_LIMIT, GENERAL_LIMIT, limiter
from tableside.core.security import has_role
from tableside.database import get_db
from tableside.models import Reservation, ReservationStatus, User, UserRole
from tableside.schemas import (
    AvailabilityResponse,
    ReservationCreate,
    ReservationResponse,
    ReservationStatusUpdate,
)
from tableside.services.reservations import (
    HOLDING_STATUSES,
    ReservationError,
    change_status,
    create_reservation,
    normalize_date,
    slot_availability,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


def _serialize(reservation: Reservation) -> dict:
    return ReservationResponse.model_validate(reservation).model_dump(mode="json")


async def _get_or_404(db: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await db.get(Reservation, reservation_id)
    if reservation is None:
        raise HTTPException(status_code=404, detail=f"Reservation #{reservation_id} not found")
    return reservation


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(GENERAL_LIMIT)
async def book_table(
    request: Request,
    payload: ReservationCreate,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    try:
        reservation = await create_reservation(db, payload, user.id if user else None)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return {
        "success": True,
        "message": "Reservation request received",
        "data": _serialize(reservation),
    }


@router.get("")
async def list_reservations(
    email: Optional[str] = Query(None, max_length=255),
    date: Optional[str] = Query(None),
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Newest first, capped at the configured list limit."""
    query = select(Reservation)
    if email:
        query = query.where(Reservation.customer_email == email.strip().lower())
    if date:
        try:
            query = query.where(Reservation.date == normalize_date(date).isoformat())
        except ReservationError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
    if status_filter is not None:
        query = query.where(Reservation.status == status_filter)

    result = await db.execute(
        query.order_by(Reservation.date.desc(), Reservation.time.desc(), Reservation.id.desc())
        .limit(settings.reservation_list_limit)
    )
    reservations = result.scalars().all()
    return {"success": True, "data": [_serialize(r) for r in reservations], "count": len(reservations)}


@router.get("/mine")
async def my_reservations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await db.execute(
        select(Reservation)
        .where((Reservation.user_id == user.id) | (Reservation.customer_email == user.email))
        .order_by(Reservation.date.desc(), Reservation.time.desc())
        .limit(settings.reservation_list_limit)
    )
    return {"success": True, "data": [_serialize(r) for r in result.scalars().all()]}


@router.get("/availability")
async def availability(
    date: str = Query(...),
    time: str = Query(...),
    restaurant_id: Optional[str] = Query(None, max_length=50),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    try:
        slot = await slot_availability(db, restaurant_id or settings.default_restaurant_id, date, time)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": AvailabilityResponse(**slot.to_dict()).model_dump()}


@router.patch("/{reservation_id}/status")
@limiter.limit(ADMIN_LIMIT)
async def update_reservation_status(
    request: Request,
    reservation_id: int,
    payload: ReservationStatusUpdate,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    reservation = await _get_or_404(db, reservation_id)
    try:
        change_status(reservation, payload.status, payload.table_number, payload.notes)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await db.commit()
    await db.refresh(reservation)
    logger.info(f"📅 Reservation #{reservation.id} → {payload.status.value} by staff #{staff.id}")
    return {"success": True, "data": _serialize(reservation)}


@router.post("/{reservation_id}/cancel")
@limiter.limit(GENERAL_LIMIT)
async def cancel_reservation(
    request: Request,
    reservation_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    reservation = await _get_or_404(db, reservation_id)
    owns = reservation.user_id == user.id or reservation.customer_email == user.email
    if not owns and not has_role(user.role, UserRole.STAFF):
        raise HTTPException(status_code=403, detail="Not allowed to cancel this reservation")
    if reservation.status not in HOLDING_STATUSES:
        raise HTTPException(status_code=409, detail="Only pending or confirmed reservations can be cancelled")

    reservation.status = ReservationStatus.CANCELLED
    await db.commit()
    await db.refresh(reservation)
    return {"success": True, "message": "Reservation cancelled", "data": _serialize(reservation)}
