"""
Reservation Service

Slot validation and capacity checks for table bookings.

A slot is one (restaurant, date, HH:MM) triple. Only ``pending`` and
``confirmed`` bookings count against a slot's capacity or against the
one-booking-per-email rule.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import get_settings
from tableside.models import Reservation, ReservationStatus, Restaurant
from tableside.schemas import ReservationCreate

logger = logging.getLogger(__name__)

HOLDING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

STAFF_TRANSITIONS = {
    ReservationStatus.PENDING: {
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    },
    ReservationStatus.CONFIRMED: {
        ReservationStatus.SEATED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    },
    ReservationStatus.SEATED: {ReservationStatus.COMPLETED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
    ReservationStatus.NO_SHOW: set(),
}


class ReservationError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class SlotAvailability:
    date: str
    time: str
    booked: int
    remaining: int

    @property
    def available(self) -> bool:
        return self.remaining > 0

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "time": self.time,
            "booked": self.booked,
            "remaining": self.remaining,
            "available": self.available,
        }


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_date(value: str) -> date:
    """Accept ``YYYY-MM-DD`` or an ISO datetime (date part kept)."""
    value = (value or "").strip()
    try:
        if "T" in value or " " in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return date.fromisoformat(value)
    except ValueError:
        raise ReservationError("Invalid date format. Use YYYY-MM-DD")


def normalize_time(value: str) -> str:
    """``H:MM``, ``HH:MM`` or ``HH:MM:SS`` → zero-padded ``HH:MM``."""
    match = TIME_PATTERN.match((value or "").strip())
    if not match:
        raise ReservationError("Invalid time format. Use HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ReservationError("Invalid time format. Use HH:MM")
    return f"{hour:02d}:{minute:02d}"


def validate_slot(
    day: date,
    time_str: str,
    party_size: int,
    now: Optional[datetime] = None,
    max_party_size: Optional[int] = None,
) -> None:
    """
    Reject slots that can never be booked.

    Raises:
        ReservationError: past slot, outside business hours or bad party size
    """
    settings = get_settings()
    now = now or datetime.now()
    max_party_size = max_party_size or settings.max_party_size

    if party_size < 1 or party_size > max_party_size:
        raise ReservationError(f"Party size must be between 1 and {max_party_size}")

    hour, minute = (int(part) for part in time_str.split(":"))
    if hour < settings.opening_hour or hour >= settings.closing_hour:
        raise ReservationError(
            f"Reservations are only available between "
            f"{settings.opening_hour:02d}:00 and {settings.closing_hour:02d}:00"
        )

    starts_at = datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute)
    if starts_at < now:
        raise ReservationError("Cannot make reservations in the past")


# =============================================================================
# QUERIES
# =============================================================================

async def count_slot(db: AsyncSession, restaurant_id: str, day: str, time_str: str) -> int:
    result = await db.execute(
        select(func.count(Reservation.id)).where(
            Reservation.restaurant_id == restaurant_id,
            Reservation.date == day,
            Reservation.time == time_str,
            Reservation.status.in_(HOLDING_STATUSES),
        )
    )
    return result.scalar() or 0


async def slot_availability(
    db: AsyncSession,
    restaurant_id: str,
    day_value: str,
    time_value: str,
) -> SlotAvailability:
    day = normalize_date(day_value).isoformat()
    time_str = normalize_time(time_value)
    booked = await count_slot(db, restaurant_id, day, time_str)
    capacity = get_settings().max_reservations_per_slot
    return SlotAvailability(date=day, time=time_str, booked=booked, remaining=max(0, capacity - booked))


# =============================================================================
# COMMANDS
# =============================================================================

async def create_reservation(
    db: AsyncSession,
    payload: ReservationCreate,
    user_id: Optional[int] = None,
) -> Reservation:
    """
    Validate and store a new pending reservation.

    Raises:
        ReservationError: 400 for invalid slots, 409 for a full slot or a
            duplicate booking by the same email
    """
    settings = get_settings()
    restaurant_id = payload.restaurant_id or settings.default_restaurant_id
    restaurant = await db.get(Restaurant, restaurant_id)
    restaurant_settings = (restaurant.settings or {}) if restaurant else {}

    if restaurant_settings.get("allow_reservations") is False:
        raise ReservationError("Reservations are not available")

    day = normalize_date(payload.date)
    time_str = normalize_time(payload.time)
    max_party = min(settings.max_party_size, restaurant_settings.get("max_party_size") or settings.max_party_size)
    validate_slot(day, time_str, payload.party_size, max_party_size=max_party)

    day_str = day.isoformat()
    email = payload.customer_info.email.lower()

    booked = await count_slot(db, restaurant_id, day_str, time_str)
    if booked >= settings.max_reservations_per_slot:
        raise ReservationError("This time slot is fully booked", status_code=409)

    duplicate = await db.execute(
        select(Reservation.id).where(
            Reservation.customer_email == email,
            Reservation.date == day_str,
            Reservation.time == time_str,
            Reservation.status.in_(HOLDING_STATUSES),
        )
    )
    if duplicate.first() is not None:
        raise ReservationError("You already have a reservation at this date and time", status_code=409)

    customer = payload.customer_info.model_dump()
    customer["email"] = email
    reservation = Reservation(
        restaurant_id=restaurant_id,
        user_id=user_id,
        customer_info=customer,
        customer_email=email,
        party_size=payload.party_size,
        date=day_str,
        time=time_str,
        status=ReservationStatus.PENDING,
        special_requests=payload.special_requests,
    )
    db.add(reservation)
    await db.commit()
    await db.refresh(reservation)

    logger.info(
        f"📅 Reservation #{reservation.id} - {email} - "
        f"{day_str} {time_str} x{payload.party_size}"
    )
    return reservation


def change_status(
    reservation: Reservation,
    new_status: ReservationStatus,
    table_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> None:
    current = ReservationStatus(reservation.status)
    if current != new_status and new_status not in STAFF_TRANSITIONS[current]:
        raise ReservationError(
            f"Cannot change reservation from '{current.value}' to '{new_status.value}'",
            status_code=409,
        )
    reservation.status = new_status
    if table_number is not None:
        reservation.table_number = table_number
    if notes is not None:
        reservation.notes = notes
