"""API schemas for order and checkout endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..orders import OrderStatus, OrderSummary
from ..purchases import CheckoutSession, ReconciliationResult


class CheckoutSessionRequest(BaseModel):
    pdf_id: str = Field(alias="pdfId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class CheckoutSessionResponse(BaseModel):
    session_id: str = Field(alias="sessionId")
    url: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_checkout(cls, session: CheckoutSession) -> "CheckoutSessionResponse":
        return cls(session_id=session.session_id, url=session.url)


class VerifyPaymentRequest(BaseModel):
    session_id: str = Field(alias="sessionId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class OrderPdf(BaseModel):
    id: str
    title: Optional[str] = None
    language: Optional[str] = None
    price: Optional[Decimal] = None
    cover_image_url: Optional[str] = Field(alias="coverImageUrl", default=None)

    model_config = ConfigDict(populate_by_name=True)


class OrderResponse(BaseModel):
    id: str
    pdf: OrderPdf
    amount: Decimal
    status: OrderStatus
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_summary(cls, summary: OrderSummary) -> "OrderResponse":
        order = summary.order
        return cls(
            id=order.id,
            pdf=OrderPdf(
                id=order.item_id,
                title=summary.item_title,
                language=summary.item_language,
                price=summary.item_price,
                cover_image_url=summary.item_cover_image_url,
            ),
            amount=order.amount,
            status=order.status,
            created_at=order.created_at,
        )


class VerifyPaymentResponse(BaseModel):
    message: str
    already_processed: bool = Field(alias="alreadyProcessed")
    order: OrderResponse

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "VerifyPaymentResponse":
        item = result.item
        summary = OrderSummary(
            order=result.order,
            item_title=item.title if item else None,
            item_language=item.language if item else None,
            item_price=item.price if item else None,
            item_cover_image_url=item.cover_image_url if item else None,
        )
        message = "Order already processed" if result.already_processed else "Payment verified and order created"
        return cls(
            message=message,
            already_processed=result.already_processed,
            order=OrderResponse.from_summary(summary),
        )


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]


class WebhookAck(BaseModel):
    received: bool = True
