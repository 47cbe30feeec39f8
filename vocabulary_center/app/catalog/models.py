"""Domain models for purchasable catalog items."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CENTS = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """Convert a USD amount to whole cents."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENTS)


class CatalogItem(BaseModel):
    """A downloadable vocabulary guide."""

    id: str
    title: str = Field(min_length=1)
    language: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    description: str = Field(min_length=1)
    cover_image_url: str
    pdf_file_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("title", "language", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value: Decimal) -> Decimal:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def price_cents(self) -> int:
        return to_minor_units(self.price)


class CatalogItemDraft(BaseModel):
    """Fields supplied by an administrator when creating an item."""

    title: str
    language: str
    price: Decimal
    description: str
    cover_image_url: str
    pdf_file_url: str


class CatalogItemChanges(BaseModel):
    """Partial update applied by an administrator."""

    title: Optional[str] = None
    language: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    pdf_file_url: Optional[str] = None
