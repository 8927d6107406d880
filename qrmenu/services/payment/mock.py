"""
Mock Payment Service Implementation

Simulates Stripe-like payment intents without making real API calls.
Used in development mode (ENV_MODE=development) and in the test suite.

Behavior:
    - Simulates response times between min_latency and max_latency
    - Randomly declines a share of requests (failure_rate)
    - Generates Stripe-like IDs (pi_mock_xxx)
    - Accepts any webhook payload that parses as JSON
"""

import asyncio
import json
import logging
import random
import uuid
from decimal import Decimal
from typing import Optional

from qrmenu.services.payment.base import BasePaymentService, PaymentResult

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        failure_rate: Probability of simulated decline (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
    """

    # Simulated failure reasons (mimics real Stripe decline codes)
    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("processing_error", "An error occurred while processing your card."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.1,
        max_latency: float = 0.4,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(min_latency, max_latency)

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={self.min_latency}-{self.max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """Sleep for a random latency and return it in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def create_payment_intent(
        self,
        amount: Decimal,
        currency: str = "usd",
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        latency_ms = await self._simulate_latency()

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
                response_time_ms=latency_ms,
            )

        if self._should_fail():
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.debug(f"Mock: Payment intent declined - {error_code}")
            return PaymentResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        payment_intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        logger.info(f"Mock: Created payment intent {payment_intent_id} - {amount} {currency.upper()}")

        return PaymentResult(
            success=True,
            payment_intent_id=payment_intent_id,
            client_secret=f"{payment_intent_id}_secret_mock",
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
            metadata={"mock": True, **(metadata or {})},
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """No cryptographic check in mock mode; the payload only has to parse."""
        try:
            event = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Mock: Invalid webhook payload")
            return None
        return event if isinstance(event, dict) else None

    async def health_check(self) -> bool:
        return True
