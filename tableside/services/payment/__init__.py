"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance.
Routes depend on ``get_payment_service`` through FastAPI's ``Depends`` so
tests can swap the implementation with ``app.dependency_overrides``.

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)

Version: 1.0.0
"""

import logging
from functools import lru_cache

from tableside.core.config import get_settings
from tableside.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
    RefundResult,
    to_cents,
)
from tableside.services.payment.mock import MockPaymentService
from tableside.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance.

    The instance is cached so the mock keeps its in-memory sessions for
    the lifetime of the process.

    Raises:
        ValueError: If real services are requested but Stripe is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=0.0,
            min_latency=0.05,
            max_latency=0.2,
            checkout_base_url=f"{settings.app_base_url.rstrip('/')}/mock-checkout",
        )

    logger.info(
        f"Payment Service: Using StripePaymentService "
        f"({settings.env_mode.value} mode)"
    )
    return StripePaymentService()


def reset_payment_service() -> None:
    """Clear the cached payment service instance."""
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "RefundResult",
    "MockPaymentService",
    "StripePaymentService",
    "to_cents",
]
