"""
Order Service

Pricing, checkout branching, the fulfillment lifecycle and refunds.

Pricing rules:
    subtotal = Σ(unit price × quantity)     (prices from the menu table)
    tax      = subtotal × tax rate
    total    = subtotal + tax + tip + delivery fee
Every amount is rounded half-up to whole cents.

Payment branching:
    card / digital_wallet → order saved as ``processing`` and a hosted
                            checkout session is created for it
    cash / bank_transfer  → order saved as ``pending``, no provider call
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import get_settings
from tableside.models import (
    MenuItem,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Restaurant,
    User,
    utcnow,
)
from tableside.schemas import OrderCreate
from tableside.services.payment import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
    to_cents,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

HOSTED_PAYMENT_METHODS = {PaymentMethod.CARD, PaymentMethod.DIGITAL_WALLET}

# pending → confirmed → preparing → ready → delivered, cancel from any open state
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


# =============================================================================
# ERRORS
# =============================================================================

class OrderError(Exception):
    """Business-rule failure while placing or changing an order."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidStatusTransition(OrderError):
    def __init__(self, current: OrderStatus, requested: OrderStatus):
        super().__init__(
            f"Cannot change order status from '{current.value}' to '{requested.value}'",
            status_code=409,
        )
        self.current = current
        self.requested = requested


# =============================================================================
# PRICING
# =============================================================================

def to_money(value) -> Decimal:
    """Round to cents, half away from zero."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class OrderTotals:
    subtotal: float
    tax: float
    tip: float
    delivery_fee: float
    total: float

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "tip": self.tip,
            "delivery_fee": self.delivery_fee,
            "total": self.total,
        }


def calculate_totals(
    lines: Iterable[dict],
    tax_rate: float,
    tip: float = 0.0,
    delivery_fee: float = 0.0,
) -> OrderTotals:
    """
    Compute order totals from ``{"price", "quantity"}`` lines.

    Raises:
        ValueError: negative tip or fee
    """
    if tip < 0:
        raise ValueError("Tip cannot be negative")
    if delivery_fee < 0:
        raise ValueError("Delivery fee cannot be negative")

    raw_subtotal = sum(
        (Decimal(str(line["price"])) * int(line["quantity"]) for line in lines),
        Decimal("0"),
    )
    subtotal = to_money(raw_subtotal)
    tax = to_money(subtotal * Decimal(str(tax_rate)))
    tip_amount = to_money(tip)
    fee = to_money(delivery_fee)
    total = to_money(subtotal + tax + tip_amount + fee)

    return OrderTotals(
        subtotal=float(subtotal),
        tax=float(tax),
        tip=float(tip_amount),
        delivery_fee=float(fee),
        total=float(total),
    )


async def get_restaurant(db: AsyncSession, restaurant_id: str) -> Optional[Restaurant]:
    return await db.get(Restaurant, restaurant_id)


def resolve_tax_rate(restaurant: Optional[Restaurant]) -> float:
    """Restaurant settings override the configured default rate."""
    if restaurant is not None:
        rate = (restaurant.settings or {}).get("tax_rate")
        if rate is not None:
            return float(rate)
    return get_settings().tax_rate


async def price_cart(db: AsyncSession, payload: OrderCreate, restaurant_id: str) -> list[dict]:
    """
    Snapshot cart lines against the live menu.

    Raises:
        OrderError: an item is unknown, inactive or from another restaurant
    """
    ids = {item.menu_item_id for item in payload.items}
    result = await db.execute(
        select(MenuItem).where(
            MenuItem.id.in_(ids),
            MenuItem.active.is_(True),
            MenuItem.restaurant_id == restaurant_id,
        )
    )
    menu = {item.id: item for item in result.scalars().all()}

    missing = sorted(ids - set(menu))
    if missing:
        raise OrderError(f"Menu items not available: {missing}")

    return [
        {
            "menu_item_id": line.menu_item_id,
            "name": menu[line.menu_item_id].name,
            "price": menu[line.menu_item_id].price,
            "quantity": line.quantity,
            "special_instructions": line.special_instructions,
        }
        for line in payload.items
    ]


def checkout_line_items(order: Order) -> list[CheckoutLineItem]:
    """Hosted checkout lines: menu lines plus tax, tip and delivery fee, in cents."""
    lines = [
        CheckoutLineItem(
            name=item["name"],
            unit_amount=to_cents(item["price"]),
            quantity=max(1, int(item["quantity"])),
            description=item.get("special_instructions") or None,
        )
        for item in order.items
    ]
    if order.tax > 0:
        lines.append(CheckoutLineItem(name="Tax", unit_amount=to_cents(order.tax)))
    if order.tip > 0:
        lines.append(CheckoutLineItem(name="Tip", unit_amount=to_cents(order.tip)))
    if order.delivery_fee > 0:
        lines.append(CheckoutLineItem(name="Delivery Fee", unit_amount=to_cents(order.delivery_fee)))
    return lines


# =============================================================================
# PLACING ORDERS
# =============================================================================

async def place_order(
    db: AsyncSession,
    payment_service: BasePaymentService,
    payload: OrderCreate,
    user: Optional[User],
    origin: str,
) -> tuple[Order, Optional[CheckoutSessionResult]]:
    """
    Price, persist and (for hosted methods) open checkout for a cart.

    Args:
        origin: Storefront base URL used for checkout redirects

    Returns:
        (order, checkout result or None for offline payment methods)

    Raises:
        OrderError: validation failures (400) or provider failure (502)
    """
    settings = get_settings()
    restaurant_id = payload.restaurant_id or settings.default_restaurant_id
    restaurant = await get_restaurant(db, restaurant_id)
    restaurant_settings = (restaurant.settings or {}) if restaurant else {}

    customer = payload.customer_info.model_dump() if payload.customer_info else None
    if customer is None:
        if user is None:
            raise OrderError("Customer information is required for guest orders")
        customer = {"name": user.name, "email": user.email, "phone": user.phone}
    customer["email"] = customer["email"].lower()

    allowed_methods = restaurant_settings.get("payment_methods")
    if allowed_methods and payload.payment_method.value not in allowed_methods:
        raise OrderError(f"Payment method '{payload.payment_method.value}' is not accepted")
    if payload.delivery_address and restaurant_settings.get("allow_delivery") is False:
        raise OrderError("Delivery is not available")
    if payload.tip > 0 and restaurant_settings.get("tip_enabled") is False:
        raise OrderError("Tips are not accepted")

    lines = await price_cart(db, payload, restaurant_id)
    delivery_fee = settings.delivery_fee if payload.delivery_address else 0.0
    totals = calculate_totals(lines, resolve_tax_rate(restaurant), payload.tip, delivery_fee)

    hosted = payload.payment_method in HOSTED_PAYMENT_METHODS
    order = Order(
        restaurant_id=restaurant_id,
        user_id=user.id if user else None,
        customer_info=customer,
        customer_email=customer["email"],
        delivery_address=payload.delivery_address.model_dump() if payload.delivery_address else None,
        items=lines,
        special_instructions=payload.special_instructions,
        payment_method=payload.payment_method,
        payment_status=PaymentStatus.PROCESSING if hosted else PaymentStatus.PENDING,
        status=OrderStatus.PENDING,
        **totals.to_dict(),
    )
    db.add(order)
    await db.flush()

    logger.info(
        f"🧾 Order #{order.id} created - {customer['email']} - "
        f"${order.total:.2f} via {order.payment_method.value}"
    )

    if not hosted:
        await db.commit()
        await db.refresh(order)
        return order, None

    base = origin.rstrip("/")
    checkout = await payment_service.create_checkout_session(
        line_items=checkout_line_items(order),
        success_url=f"{base}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/cart",
        customer_email=customer["email"],
        metadata={
            "order_id": str(order.id),
            "user_id": str(user.id) if user else "guest",
        },
        currency=settings.stripe_currency,
    )

    if not checkout.success:
        order.payment_status = PaymentStatus.FAILED
        order.status = OrderStatus.CANCELLED
        order.notes = f"Checkout failed: {checkout.error_code}"
        await db.commit()
        logger.error(f"❌ Checkout for order #{order.id} failed - {checkout.error_message}")
        raise OrderError(checkout.error_message or "Payment provider error", status_code=502)

    order.checkout_session_id = checkout.session_id
    order.checkout_url = checkout.url
    await db.commit()
    await db.refresh(order)
    return order, checkout


# =============================================================================
# LIFECYCLE
# =============================================================================

def transition_status(order: Order, new_status: OrderStatus) -> bool:
    """
    Move ``order`` to ``new_status``.

    Returns:
        False when the order already has that status (no-op), else True

    Raises:
        InvalidStatusTransition: the lifecycle does not allow the move
    """
    current = OrderStatus(order.status)
    if current == new_status:
        return False
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current, new_status)

    order.status = new_status
    # Offline payments are collected on hand-over
    if (
        new_status == OrderStatus.DELIVERED
        and order.payment_method not in HOSTED_PAYMENT_METHODS
        and order.payment_status == PaymentStatus.PENDING
    ):
        order.payment_status = PaymentStatus.COMPLETED
    return True


def apply_tip(order: Order, tip: float) -> OrderTotals:
    """Replace the tip and recompute the total from the stored amounts."""
    if OrderStatus(order.status) == OrderStatus.CANCELLED:
        raise OrderError("Cannot tip a cancelled order")
    if order.payment_status in (PaymentStatus.PROCESSING, PaymentStatus.REFUNDED):
        raise OrderError("Tip cannot be changed while payment is in progress or refunded", status_code=409)
    # The provider charged the total as it stood at checkout
    if order.payment_method in HOSTED_PAYMENT_METHODS and order.payment_status == PaymentStatus.COMPLETED:
        raise OrderError("Tip cannot be changed after the card payment was captured", status_code=409)

    total = to_money(
        to_money(order.subtotal) + to_money(order.tax) + to_money(tip) + to_money(order.delivery_fee)
    )
    order.tip = float(to_money(tip))
    order.total = float(total)
    return OrderTotals(
        subtotal=order.subtotal,
        tax=order.tax,
        tip=order.tip,
        delivery_fee=order.delivery_fee,
        total=order.total,
    )


async def refund_order(
    payment_service: BasePaymentService,
    order: Order,
    amount: Optional[float] = None,
    reason: Optional[str] = None,
) -> float:
    """
    Refund a paid order, in full or in part.

    Hosted payments are refunded through the provider; offline payments are
    only marked refunded. Returns the refunded amount.
    """
    if order.payment_status != PaymentStatus.COMPLETED:
        raise OrderError(
            f"Only completed payments can be refunded (payment is '{PaymentStatus(order.payment_status).value}')",
            status_code=409,
        )
    if amount is not None and to_money(amount) > to_money(order.total):
        raise OrderError("Refund amount exceeds order total")

    refund_amount = float(to_money(amount if amount is not None else order.total))

    if order.payment_method in HOSTED_PAYMENT_METHODS:
        if not order.payment_intent_id:
            raise OrderError("Order has no payment to refund", status_code=409)
        result = await payment_service.refund_payment(order.payment_intent_id, amount, reason)
        if not result.success:
            logger.error(f"❌ Refund for order #{order.id} failed - {result.error_message}")
            raise OrderError(result.error_message or "Refund failed", status_code=502)
        order.refund_id = result.refund_id
        if result.amount is not None:
            refund_amount = result.amount

    order.payment_status = PaymentStatus.REFUNDED
    order.refunded_amount = refund_amount
    if reason:
        order.notes = f"{order.notes}\nRefund: {reason}" if order.notes else f"Refund: {reason}"

    logger.info(f"💸 Order #{order.id} refunded ${refund_amount:.2f}")
    return refund_amount


# =============================================================================
# WEBHOOKS
# =============================================================================

async def apply_checkout_event(db: AsyncSession, event: dict) -> Optional[Order]:
    """
    Apply a hosted-checkout webhook event to its order.

    Returns the updated order, or None when the event type is not handled
    or no order matches the session.
    """
    event_type = event.get("type")
    session = (event.get("data") or {}).get("object") or {}
    session_id = session.get("id")

    if event_type not in ("checkout.session.completed", "checkout.session.expired") or not session_id:
        logger.debug(f"Ignoring payment event {event_type}")
        return None

    result = await db.execute(select(Order).where(Order.checkout_session_id == session_id))
    order = result.scalar_one_or_none()
    if order is None:
        logger.warning(f"Payment event {event_type} for unknown session {session_id}")
        return None

    if event_type == "checkout.session.completed":
        if order.payment_status == PaymentStatus.COMPLETED:
            return order
        order.payment_status = PaymentStatus.COMPLETED
        order.payment_intent_id = session.get("payment_intent") or order.payment_intent_id
        if OrderStatus(order.status) == OrderStatus.PENDING:
            order.status = OrderStatus.CONFIRMED
        logger.info(f"✅ Order #{order.id} paid ({order.payment_intent_id})")
    else:
        if order.payment_status != PaymentStatus.PROCESSING:
            return order
        order.payment_status = PaymentStatus.FAILED
        if OrderStatus(order.status) == OrderStatus.PENDING:
            order.status = OrderStatus.CANCELLED
        logger.info(f"⌛ Checkout for order #{order.id} expired")

    await db.commit()
    return order


async def expire_stale_checkouts(db: AsyncSession, older_than_hours: Optional[int] = None) -> int:
    """Cancel card orders whose checkout never completed. Returns rows changed."""
    hours = older_than_hours or get_settings().checkout_expiry_hours
    cutoff = utcnow() - timedelta(hours=hours)
    result = await db.execute(
        update(Order)
        .where(
            Order.payment_status == PaymentStatus.PROCESSING,
            Order.status == OrderStatus.PENDING,
            Order.created_at < cutoff,
        )
        .values(payment_status=PaymentStatus.FAILED, status=OrderStatus.CANCELLED, updated_at=utcnow())
    )
    await db.commit()
    return result.rowcount or 0
