"""API routes for checkout, payment verification and processor webhooks."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from ..identity import Identity
from ..schemas.orders import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    OrderListResponse,
    OrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookAck,
)
from ..services.purchases import get_purchase_service
from .dependencies import get_current_identity

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    payload: CheckoutSessionRequest,
    *,
    identity: Identity = Depends(get_current_identity),
) -> CheckoutSessionResponse:
    session = get_purchase_service().create_checkout_session(identity, payload.pdf_id)
    return CheckoutSessionResponse.from_checkout(session)


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(
    payload: VerifyPaymentRequest,
    *,
    identity: Identity = Depends(get_current_identity),
) -> VerifyPaymentResponse:
    result = get_purchase_service().verify_payment(identity, payload.session_id)
    return VerifyPaymentResponse.from_result(result)


@router.get("/my-orders", response_model=OrderListResponse)
def list_my_orders(*, identity: Identity = Depends(get_current_identity)) -> OrderListResponse:
    summaries = get_purchase_service().list_orders(identity)
    return OrderListResponse(orders=[OrderResponse.from_summary(summary) for summary in summaries])


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
) -> WebhookAck:
    # Signature covers the raw bytes.
    raw_body = await request.body()
    await run_in_threadpool(get_purchase_service().handle_webhook, raw_body, stripe_signature)
    return WebhookAck()


__all__ = ["router"]
