"""
Stripe payment intents and signed webhooks.

Selected outside development mode. STRIPE_SECRET_KEY is mandatory;
without STRIPE_WEBHOOK_SECRET every webhook is rejected. Amounts cross the
SDK boundary in cents.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

import stripe
from stripe import (
    APIConnectionError,
    AuthenticationError,
    InvalidRequestError,
    SignatureVerificationError,
    StripeError,
)

from qrmenu.core.config import get_settings
from qrmenu.services.payment.base import BasePaymentService, PaymentResult
from qrmenu.services.pricing import CENT

logger = logging.getLogger(__name__)

# (exception, error_code, client message, log level); None keeps the SDK message.
# StripeError must stay last.
FAILURES = (
    (InvalidRequestError, "invalid_request", None, logging.ERROR),
    (AuthenticationError, "authentication_error", "Payment service configuration error", logging.CRITICAL),
    (APIConnectionError, "connection_error", "Payment service temporarily unavailable", logging.ERROR),
    (StripeError, "stripe_error", "Payment processing error", logging.ERROR),
)


class StripePaymentService(BasePaymentService):
    """
    Stripe-backed payment intents and webhook verification.

    Configuration:
        Requires STRIPE_SECRET_KEY environment variable.
        Uses STRIPE_WEBHOOK_SECRET to verify webhook signatures.
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
        stripe.api_version = "2023-10-16"  # Pin API version

        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.currency

        logger.info(f"StripePaymentService initialized (api_version={stripe.api_version})")

    @property
    def provider_name(self) -> str:
        return "stripe"

    @staticmethod
    def _to_cents(amount: Decimal) -> int:
        """Stripe expects amounts in the smallest currency unit."""
        return int((Decimal(amount) / CENT).to_integral_value())

    @staticmethod
    def _from_cents(cents: int) -> Decimal:
        return Decimal(cents) * CENT

    async def create_payment_intent(
        self,
        amount: Decimal,
        currency: str = "usd",
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Create a PaymentIntent for client-side confirmation.

        Returns a client_secret that the frontend uses with Stripe.js
        to complete the payment.
        """
        start_time = datetime.now()

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        try:
            intent = stripe.PaymentIntent.create(
                amount=self._to_cents(amount),
                currency=currency or self._currency,
                metadata={k: str(v) for k, v in (metadata or {}).items()},
                automatic_payment_methods={"enabled": True},
            )

            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.info(f"Stripe: PaymentIntent created - {intent.id} - status={intent.status}")

            return PaymentResult(
                success=True,
                payment_intent_id=intent.id,
                client_secret=intent.client_secret,
                amount=self._from_cents(intent.amount),
                currency=intent.currency,
                response_time_ms=elapsed_ms,
                metadata={"status": intent.status},
            )

        except StripeError as e:
            return self._failure(e, start_time)

    def _failure(self, error: StripeError, start_time: datetime) -> PaymentResult:
        """Map an SDK exception to a failed PaymentResult."""
        for error_type, code, message, level in FAILURES:
            if isinstance(error, error_type):
                break
        logger.log(level, f"Stripe: {code} - {error}")
        return PaymentResult(
            success=False,
            error_message=message or str(error),
            error_code=code,
            response_time_ms=(datetime.now() - start_time).total_seconds() * 1000,
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a Stripe webhook event.

        Events without a valid Stripe-Signature header are rejected; without
        a configured webhook secret every event is rejected.
        """
        if not self._webhook_secret:
            logger.error("Stripe: Webhook secret not configured, rejecting event")
            return None
        if not signature:
            logger.warning("Stripe: Webhook without signature header")
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
        return event.to_dict()

    async def health_check(self) -> bool:
        """Lightweight API call verifying credentials and connectivity."""
        try:
            stripe.Account.retrieve()
            return True
        except StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
