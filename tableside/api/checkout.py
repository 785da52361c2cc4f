"""
Checkout Endpoints

    POST /api/checkout                       - Create order + hosted payment session
    POST /api/checkout/webhook               - Payment provider events
    GET  /api/checkout/session/{session_id}  - Order state for the success page
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import get_optional_user, request_origin
from tableside.api.orders import serialize_order
from tableside.core.rate_limit import GENERAL_LIMIT, limiter
from tableside.database import get_db
from tableside.models import Order, User
from tableside.schemas import CheckoutRequest, CheckoutResponse
from tableside.services.orders import OrderError, apply_checkout_event, place_order
from tableside.services.payment import BasePaymentService, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(GENERAL_LIMIT)
async def create_checkout(
    request: Request,
    payload: CheckoutRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """
    Turn a cart into an order.

    Card payments return the hosted checkout URL to redirect to; cash
    payments return the stored order with no URL.
    """
    try:
        order, checkout = await place_order(db, payment_service, payload, user, request_origin(request))
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    response = CheckoutResponse(
        success=True,
        order_id=order.id,
        session_id=checkout.session_id if checkout else None,
        url=checkout.url if checkout else None,
        total=order.total,
        payment_status=order.payment_status,
    )
    return response.model_dump(mode="json")


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> dict[str, Any]:
    """
    Payment provider callback.

    Invalid signatures are rejected with 400; valid events the service
    does not handle are acknowledged so the provider stops retrying.
    """
    payload = await request.body()
    event = await payment_service.verify_webhook(payload, stripe_signature)
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid webhook signature or payload")

    logger.info(f"Payment webhook received: {event.get('type', 'unknown')}")
    order = await apply_checkout_event(db, event)

    return {
        "received": True,
        "order_id": order.id if order else None,
    }


@router.get("/session/{session_id}")
async def checkout_session_status(
    session_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Looked up by the unguessable session id, so no login is required."""
    result = await db.execute(select(Order).where(Order.checkout_session_id == session_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=404, detail="Checkout session not found")
    return {"success": True, "data": serialize_order(order)}
