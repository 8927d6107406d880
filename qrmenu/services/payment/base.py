"""
Payment Service Abstract Base Class

Defines the interface contract for all payment service implementations.
Both MockPaymentService and StripePaymentService implement these methods,
so order checkout behaves the same regardless of which one is active.

Design Pattern: Strategy Pattern
    - Runtime switching between payment providers
    - Tests run against the mock without touching the network
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class PaymentResult:
    """
    Standardized result from a payment provider call.

    Attributes:
        success: Whether the provider accepted the request
        payment_intent_id: Provider identifier of the payment (pi_xxx)
        client_secret: Secret the frontend uses to confirm the payment
        amount: Amount in currency units (e.g. 17.60)
        currency: Currency code (e.g., "usd")
        error_message: Error description if the call failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider
        metadata: Additional data from the payment provider
    """
    success: bool
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: Optional[dict] = None


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_payment_intent(
        ...     amount=Decimal("17.60"),
        ...     metadata={"order_number": "ORD-000001"},
        ... )
        >>> if result.success:
        ...     print(result.client_secret)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider ("mock", "stripe")."""

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: Decimal,
        currency: str = "usd",
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Create a payment intent for client-side confirmation.

        Args:
            amount: Amount in currency units, not cents
            currency: Currency code
            metadata: Key-value data attached to the intent

        Returns:
            PaymentResult: Contains client_secret for the frontend
        """

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

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable and operational."""
