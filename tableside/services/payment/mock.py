"""
Mock Payment Service Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Run the complete checkout flow locally
    - Exercise the webhook path by posting events by hand
    - Demo the storefront without a Stripe account

Behavior:
    - Simulates response latency (configurable)
    - Randomly fails a share of session creations (configurable)
    - Generates Stripe-like IDs (cs_mock_xxx, pi_mock_xxx, re_mock_xxx)
    - Webhooks are accepted as plain JSON without signature checks

Version: 1.0.0
"""

import asyncio
import json
import logging
import random
import uuid
from typing import Optional

from tableside.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
    RefundResult,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Sessions are kept in memory so ``retrieve_checkout_session`` can
    report what was created.

    Attributes:
        failure_rate: Probability of a simulated provider failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        checkout_base_url: Fake hosted page prefix
    """

    FAILURE_REASONS = [
        ("api_connection_error", "Payment service temporarily unavailable"),
        ("rate_limit", "Too many requests made to the payment service"),
        ("processing_error", "An error occurred while creating the checkout session."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.05,
        max_latency: float = 0.2,
        checkout_base_url: str = "https://checkout.mock.local/pay",
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.checkout_base_url = checkout_base_url
        self._sessions: dict[str, dict] = {}

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    def _generate_id(self, prefix: str) -> str:
        return f"{prefix}_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        metadata: Optional[dict] = None,
        currency: str = "usd",
    ) -> CheckoutSessionResult:
        """Simulate Stripe Checkout session creation."""
        latency_ms = await self._simulate_latency()

        if not line_items:
            return CheckoutSessionResult(
                success=False,
                error_message="At least one line item is required",
                error_code="invalid_request",
                response_time_ms=latency_ms,
            )

        if self._should_fail():
            error_code, error_message = random.choice(self.FAILURE_REASONS)
            logger.debug(f"Mock: Checkout session failed - {error_code}")
            return CheckoutSessionResult(
                success=False,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        session_id = self._generate_id("cs")
        amount_cents = sum(line.unit_amount * line.quantity for line in line_items)
        self._sessions[session_id] = {
            "amount_total": amount_cents,
            "customer_email": customer_email,
            "metadata": dict(metadata or {}),
            "success_url": success_url.replace("{CHECKOUT_SESSION_ID}", session_id),
            "cancel_url": cancel_url,
            "payment_status": "unpaid",
        }

        logger.info(f"Mock: Checkout session created - {session_id} - ${amount_cents / 100:.2f}")

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=f"{self.checkout_base_url}/{session_id}",
            payment_status="unpaid",
            amount_total=amount_cents / 100,
            currency=currency,
            response_time_ms=latency_ms,
            metadata={"mock": True, **(metadata or {})},
        )

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        await self._simulate_latency()
        stored = self._sessions.get(session_id)
        if stored is None:
            return CheckoutSessionResult(
                success=False,
                session_id=session_id,
                error_message="No such checkout session",
                error_code="resource_missing",
            )
        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=f"{self.checkout_base_url}/{session_id}",
            payment_status=stored["payment_status"],
            payment_intent_id=stored.get("payment_intent_id"),
            amount_total=stored["amount_total"] / 100,
            metadata=stored["metadata"],
        )

    def complete_session(self, session_id: str) -> dict:
        """
        Mark a stored session paid and return the matching webhook event.

        Lets local tooling drive ``checkout.session.completed`` without Stripe.
        """
        stored = self._sessions[session_id]
        stored["payment_status"] = "paid"
        stored["payment_intent_id"] = self._generate_id("pi")
        return {
            "id": self._generate_id("evt"),
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "payment_intent": stored["payment_intent_id"],
                    "payment_status": "paid",
                    "amount_total": stored["amount_total"],
                    "metadata": stored["metadata"],
                }
            },
        }

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Simulate refunding a payment."""
        await self._simulate_latency()

        if not payment_intent_id.startswith("pi_"):
            return RefundResult(
                success=False,
                status="failed",
                error_message="Invalid payment intent ID",
            )

        refund_id = self._generate_id("re")
        logger.info(f"Mock: Refund processed - {refund_id}")

        return RefundResult(
            success=True,
            refund_id=refund_id,
            amount=amount,
            status="succeeded",
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """Mock mode returns the parsed payload without cryptographic verification."""
        try:
            event = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Mock: Invalid webhook payload")
            return None
        if not isinstance(event, dict) or "type" not in event:
            logger.warning("Mock: Webhook payload has no event type")
            return None
        return event

    async def health_check(self) -> bool:
        logger.debug("Mock: Health check passed")
        return True
