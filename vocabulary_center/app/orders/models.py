"""Ledger records proving that an identity paid for an item."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Order(BaseModel):
    """One entitlement record, keyed by the processor's payment intent."""

    id: str
    identity_id: str
    item_id: str
    payment_intent_id: str
    amount: Decimal = Field(ge=0)
    status: OrderStatus = OrderStatus.COMPLETED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class OrderSummary(BaseModel):
    """An order joined with the catalog fields shown in purchase history."""

    order: Order
    item_title: Optional[str] = None
    item_language: Optional[str] = None
    item_price: Optional[Decimal] = None
    item_cover_image_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)


__all__ = ["Order", "OrderStatus", "OrderSummary"]
