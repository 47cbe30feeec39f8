"""Domain models for the purchase flow."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..catalog.models import CatalogItem
from ..orders.models import Order

CHECKOUT_COMPLETED_EVENT = "checkout.session.completed"


class CheckoutSession(BaseModel):
    """Hosted checkout session the customer is redirected to."""

    session_id: str
    url: str

    model_config = ConfigDict(frozen=True)


class PaymentSession(BaseModel):
    """State of a checkout session as reported by the payment processor."""

    session_id: str
    payment_status: str
    payment_intent_id: Optional[str] = None
    amount_total: Optional[int] = Field(default=None, ge=0)
    currency: str = "usd"
    customer_email: Optional[str] = None
    url: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def identity_id(self) -> Optional[str]:
        return self.metadata.get("userId")

    @property
    def item_id(self) -> Optional[str]:
        return self.metadata.get("pdfId")

    @classmethod
    def from_processor(cls, data: Mapping[str, Any]) -> "PaymentSession":
        """Build from a processor checkout-session object."""

        payment_intent = data.get("payment_intent")
        if isinstance(payment_intent, Mapping):
            payment_intent = payment_intent.get("id")
        metadata = data.get("metadata") or {}
        return cls(
            session_id=str(data.get("id", "")),
            payment_status=str(data.get("payment_status") or "unpaid"),
            payment_intent_id=payment_intent or None,
            amount_total=data.get("amount_total"),
            currency=str(data.get("currency") or "usd"),
            customer_email=data.get("customer_email") or (data.get("customer_details") or {}).get("email"),
            url=data.get("url"),
            metadata={str(key): str(value) for key, value in metadata.items()},
        )


class WebhookEvent(BaseModel):
    """A verified notification pushed by the payment processor."""

    event_id: str
    event_type: str
    data_object: Dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WebhookEvent":
        data = payload.get("data") or {}
        return cls(
            event_id=str(payload.get("id", "")),
            event_type=str(payload.get("type", "")),
            data_object=dict(data.get("object") or {}),
        )


class ReconciliationResult(BaseModel):
    """Outcome of turning a paid session into an order and an entitlement."""

    order: Order
    item: Optional[CatalogItem] = None
    already_processed: bool = False

    model_config = ConfigDict(frozen=True)


class PurchaseAuditEventType(str, Enum):
    CHECKOUT_CREATED = "checkout_created"
    PAYMENT_RECONCILED = "payment_reconciled"
    PAYMENT_ALREADY_PROCESSED = "payment_already_processed"
    WEBHOOK_IGNORED = "webhook_ignored"
    ENTITLEMENT_GRANT_FAILED = "entitlement_grant_failed"


class PurchaseAuditEvent(BaseModel):
    event_type: PurchaseAuditEventType
    identity_id: Optional[str] = None
    item_id: Optional[str] = None
    reference: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


__all__ = [
    "CHECKOUT_COMPLETED_EVENT",
    "CheckoutSession",
    "PaymentSession",
    "PurchaseAuditEvent",
    "PurchaseAuditEventType",
    "ReconciliationResult",
    "WebhookEvent",
]
