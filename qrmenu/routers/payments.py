"""Payment endpoints: intents for unpaid orders and the provider webhook."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from qrmenu.models import User
from qrmenu.routers.deps import access_context, get_checkout, get_optional_user
from qrmenu.schemas import Envelope, PaymentIntentOut, WebhookAck
from qrmenu.services.checkout import CheckoutService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/orders/{order_id}/intent", response_model=Envelope[PaymentIntentOut])
async def create_payment_intent(
    order_id: int,
    checkout: CheckoutService = Depends(get_checkout),
    user: Optional[User] = Depends(get_optional_user),
) -> Envelope[PaymentIntentOut]:
    intent = await checkout.create_intent(order_id, access_context(user))
    return Envelope(message="Payment intent created", data=intent)


@router.post("/webhook", response_model=Envelope[WebhookAck])
async def payment_webhook(
    request: Request,
    checkout: CheckoutService = Depends(get_checkout),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> Envelope[WebhookAck]:
    # Signature verification needs the raw body
    payload = await request.body()
    return Envelope(data=await checkout.apply_webhook(payload, stripe_signature))
