"""
Payment Service Abstract Base Class

Defines the interface contract for all payment service implementations.
Both MockPaymentService and StripePaymentService implement these methods,
so checkout behaves identically regardless of which service is active.

Card payments use a hosted checkout page: the API creates a checkout
session, the customer pays on the provider's page, and the provider
reports the outcome through a webhook.

Design Pattern: Strategy Pattern
    - Allows runtime switching between payment providers
    - Facilitates testing with mock implementations

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


def to_cents(amount: float) -> int:
    """Dollar amount to the smallest currency unit, never negative."""
    return max(0, int(round(amount * 100)))


@dataclass
class CheckoutLineItem:
    """
    One line on the hosted checkout page.

    Attributes:
        name: Label shown to the customer
        unit_amount: Price per unit in cents
        quantity: Units, at least 1
        description: Optional secondary label
    """
    name: str
    unit_amount: int
    quantity: int = 1
    description: Optional[str] = None


@dataclass
class CheckoutSessionResult:
    """
    Standardized result from creating or fetching a checkout session.

    Attributes:
        success: Whether the provider accepted the request
        session_id: Provider session id (Stripe format: cs_xxx)
        url: Hosted page the customer is redirected to
        payment_intent_id: Set once the customer has paid
        payment_status: Provider-side status (unpaid, paid, ...)
        amount_total: Session total in dollars
        error_message: Error description if the request failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider call
    """
    success: bool
    session_id: Optional[str] = None
    url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    payment_status: Optional[str] = None
    amount_total: Optional[float] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "session_id": self.session_id,
            "url": self.url,
            "payment_intent_id": self.payment_intent_id,
            "payment_status": self.payment_status,
            "amount_total": self.amount_total,
            "currency": self.currency,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
        }


@dataclass
class RefundResult:
    """
    Standardized result from refund processing.

    Attributes:
        success: Whether the refund was successful
        refund_id: Unique identifier for the refund
        amount: Amount refunded in dollars
        status: Refund status (pending, succeeded, failed)
        error_message: Error description if refund failed
    """
    success: bool
    refund_id: Optional[str] = None
    amount: Optional[float] = None
    status: str = "pending"
    error_message: Optional[str] = None


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Implementations never raise provider errors to callers; failures come
    back as results with ``success=False``.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider ("mock", "stripe")."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        metadata: Optional[dict] = None,
        currency: str = "usd",
    ) -> CheckoutSessionResult:
        """
        Create a hosted checkout session in payment mode.

        Args:
            line_items: Lines priced in cents
            success_url: Redirect after payment; may contain {CHECKOUT_SESSION_ID}
            cancel_url: Redirect when the customer abandons checkout
            customer_email: Prefills the payment page and receipt
            metadata: String key/values echoed back in webhooks
            currency: Three-letter currency code
        """
        pass

    @abstractmethod
    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        """Fetch the current state of a checkout session."""
        pass

    @abstractmethod
    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a previous payment.

        Args:
            payment_intent_id: The payment to refund
            amount: Amount to refund in dollars (None = full refund)
            reason: Reason for the refund
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a webhook from the payment provider.

        Returns:
            dict: Parsed webhook event if valid, None if invalid
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the payment service."""
        pass
