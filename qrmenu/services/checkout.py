"""
Order Checkout

Connects orders to the payment provider: creates payment intents for
unpaid orders and applies verified provider webhooks to them.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrmenu.core.access import AccessContext
from qrmenu.core.exceptions import (
    AccessDeniedError,
    ConflictError,
    OrderNotFound,
    PaymentError,
    ValidationFailedError,
)
from qrmenu.models import Order, OrderStatus, PaymentStatus
from qrmenu.schemas import PaymentIntentOut, WebhookAck
from qrmenu.services.payment import BasePaymentService

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"


class CheckoutService:

    def __init__(self, db: AsyncSession, provider: BasePaymentService, currency: str = "usd"):
        self.db = db
        self.provider = provider
        self.currency = currency

    async def create_intent(
        self,
        order_id: int,
        context: Optional[AccessContext] = None,
    ) -> PaymentIntentOut:
        """
        Open a payment intent for the order total.

        Raises:
            OrderNotFound: no such order
            AccessDeniedError: a customer asking for someone else's order
            ConflictError: the order is canceled or already settled
            PaymentError: the provider declined or failed
        """
        order = await self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFound()
        if context is not None and context.is_customer and order.customer_id != context.identity:
            raise AccessDeniedError("Access denied")
        if order.status == OrderStatus.CANCELED:
            raise ConflictError("Cannot pay for a canceled order")
        if order.payment_status != PaymentStatus.PENDING:
            raise ConflictError(f"Order is already {order.payment_status.value}")

        result = await self.provider.create_payment_intent(
            amount=order.total,
            currency=self.currency,
            metadata={"order_id": order.id, "order_number": order.order_number},
        )
        if not result.success:
            logger.warning(
                f"Payment intent for {order.order_number} failed: "
                f"{result.error_code} - {result.error_message}"
            )
            raise PaymentError(result.error_message)

        order.payment_intent_id = result.payment_intent_id
        await self.db.commit()

        logger.info(f"Payment intent {result.payment_intent_id} opened for {order.order_number}")
        return PaymentIntentOut(
            order_id=order.id,
            order_number=order.order_number,
            payment_intent_id=result.payment_intent_id,
            client_secret=result.client_secret,
            amount=order.total,
            currency=self.currency,
            provider=self.provider.provider_name,
        )

    async def apply_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookAck:
        """
        Apply a provider event. Only successful payment intents change state;
        everything else is acknowledged and ignored.
        """
        event = await self.provider.verify_webhook(payload, signature)
        if event is None:
            raise ValidationFailedError("Invalid webhook signature or payload")

        event_type = event.get("type")
        if event_type != PAYMENT_SUCCEEDED:
            logger.debug(f"Ignoring payment event {event_type}")
            return WebhookAck(event_type=event_type)

        intent = (event.get("data") or {}).get("object") or {}
        order = await self._order_for_intent(intent)
        if order is None:
            logger.warning(f"Payment event for unknown intent {intent.get('id')}")
            return WebhookAck(event_type=event_type)

        if order.payment_status != PaymentStatus.PAID:
            order.payment_status = PaymentStatus.PAID
            order.payment_intent_id = intent.get("id") or order.payment_intent_id
            await self.db.commit()
            logger.info(f"Order {order.order_number} marked paid")

        return WebhookAck(event_type=event_type, order_number=order.order_number)

    async def _order_for_intent(self, intent: dict) -> Optional[Order]:
        intent_id = intent.get("id")
        if intent_id:
            order = await self.db.scalar(select(Order).where(Order.payment_intent_id == intent_id))
            if order is not None:
                return order

        order_id = (intent.get("metadata") or {}).get("order_id")
        if order_id is not None and str(order_id).isdigit():
            return await self.db.get(Order, int(order_id))
        return None
