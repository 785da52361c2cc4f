"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Security Notes:
    - Card data never touches this service; customers pay on Stripe Checkout
    - Always verify webhook signatures

Version: 1.0.0
"""

import json
import logging
from datetime import datetime
from typing import Optional

import stripe
from stripe import (
    APIConnectionError,
    AuthenticationError,
    InvalidRequestError,
    SignatureVerificationError,
    StripeError,
)

from tableside.core.config import get_settings
from tableside.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
    RefundResult,
    to_cents,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service implementation.

    Creates Checkout Sessions in ``payment`` mode, refunds PaymentIntents
    and verifies signed webhook events.
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required outside development mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key

        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    @staticmethod
    def _elapsed_ms(start_time: datetime) -> float:
        return (datetime.now() - start_time).total_seconds() * 1000

    def _failure(self, e: StripeError, start_time: datetime) -> CheckoutSessionResult:
        """Map a Stripe exception onto a failed result."""
        elapsed_ms = self._elapsed_ms(start_time)

        if isinstance(e, InvalidRequestError):
            logger.error(f"Stripe: Invalid request - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message=str(e),
                error_code="invalid_request",
                response_time_ms=elapsed_ms,
            )
        if isinstance(e, AuthenticationError):
            logger.critical(f"Stripe: Authentication failed - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
                response_time_ms=elapsed_ms,
            )
        if isinstance(e, APIConnectionError):
            logger.error(f"Stripe: Connection error - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )

        logger.error(f"Stripe: Error - {e}")
        return CheckoutSessionResult(
            success=False,
            error_message="Payment processing error",
            error_code="stripe_error",
            response_time_ms=elapsed_ms,
        )

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        metadata: Optional[dict] = None,
        currency: str = "usd",
    ) -> CheckoutSessionResult:
        start_time = datetime.now()
        currency = currency or self._currency

        stripe_lines = []
        for line in line_items:
            product_data = {"name": line.name}
            if line.description:
                product_data["description"] = line.description
            stripe_lines.append({
                "price_data": {
                    "currency": currency,
                    "product_data": product_data,
                    "unit_amount": line.unit_amount,
                },
                "quantity": max(1, line.quantity),
            })

        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": stripe_lines,
            "success_url": success_url,
            "cancel_url": cancel_url,
            # Stripe metadata values must be strings
            "metadata": {k: str(v) for k, v in (metadata or {}).items()},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params)
        except StripeError as e:
            return self._failure(e, start_time)

        logger.info(f"Stripe: Checkout session created - {session.id}")

        return CheckoutSessionResult(
            success=True,
            session_id=session.id,
            url=session.url,
            payment_status=session.payment_status,
            amount_total=(session.amount_total or 0) / 100,
            currency=session.currency or currency,
            response_time_ms=self._elapsed_ms(start_time),
        )

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        start_time = datetime.now()
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except StripeError as e:
            return self._failure(e, start_time)

        return CheckoutSessionResult(
            success=True,
            session_id=session.id,
            url=session.url,
            payment_intent_id=session.payment_intent,
            payment_status=session.payment_status,
            amount_total=(session.amount_total or 0) / 100,
            currency=session.currency or self._currency,
            response_time_ms=self._elapsed_ms(start_time),
            metadata=dict(session.metadata or {}),
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a payment through Stripe.

        Args:
            payment_intent_id: The PaymentIntent to refund
            amount: Partial refund amount (None = full refund)
            reason: Free-text reason, stored as refund metadata
        """
        try:
            refund_params = {
                "payment_intent": payment_intent_id,
                "reason": "requested_by_customer",
            }
            if amount is not None:
                refund_params["amount"] = to_cents(amount)
            if reason:
                refund_params["metadata"] = {"reason": reason}

            refund = stripe.Refund.create(**refund_params)

            logger.info(f"Stripe: Refund processed - {refund.id} - status={refund.status}")

            return RefundResult(
                success=True,
                refund_id=refund.id,
                amount=refund.amount / 100,
                status=refund.status,
            )

        except StripeError as e:
            logger.error(f"Stripe: Refund failed - {e}")
            return RefundResult(
                success=False,
                status="failed",
                error_message=str(e),
            )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a Stripe webhook event.

        Returns:
            Parsed event object if valid, None if verification fails
        """
        if not self._webhook_secret:
            logger.error("Stripe: Webhook secret not configured, rejecting event")
            return None
        if not signature:
            logger.warning("Stripe: Webhook without Stripe-Signature header")
            return None

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except SignatureVerificationError as e:
            logger.warning(f"Stripe: Webhook signature invalid - {e}")
            return None
        except ValueError as e:
            logger.warning(f"Stripe: Webhook payload invalid - {e}")
            return None

        logger.debug(f"Stripe: Webhook verified - {event['type']}")
        # construct_event already validated the body; hand back plain dicts
        return json.loads(payload)

    async def health_check(self) -> bool:
        """Make a lightweight API call to verify credentials and connectivity."""
        try:
            stripe.Account.retrieve()
            logger.debug("Stripe: Health check passed")
            return True
        except StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
