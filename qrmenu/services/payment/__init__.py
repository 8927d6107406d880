"""
Payment Service Factory

Single entry point for obtaining a payment service instance; the rest of
the application stays agnostic about which provider is in use.

Usage:
    from qrmenu.services.payment import get_payment_service

    payment_service = get_payment_service()
    result = await payment_service.create_payment_intent(Decimal("17.60"))

Environment Switching:
    - ENV_MODE=development -> MockPaymentService (no API calls)
    - ENV_MODE=staging -> StripePaymentService (test keys)
    - ENV_MODE=production -> StripePaymentService (live keys)
"""

import logging
from functools import lru_cache

from qrmenu.core.config import get_settings
from qrmenu.services.payment.base import BasePaymentService, PaymentResult
from qrmenu.services.payment.mock import MockPaymentService
from qrmenu.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance (cached per process).

    Raises:
        ValueError: If a real-services mode is active without a Stripe key
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=settings.mock_payment_failure_rate,
            min_latency=settings.mock_payment_min_latency,
            max_latency=settings.mock_payment_max_latency,
        )

    logger.info(f"Payment Service: Using StripePaymentService ({settings.env_mode.value} mode)")
    return StripePaymentService()


def reset_payment_service() -> None:
    """Clear the cached instance; the next call builds a new one."""
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "PaymentResult",
    "MockPaymentService",
    "StripePaymentService",
]
