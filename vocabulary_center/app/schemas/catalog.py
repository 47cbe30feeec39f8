"""API schemas for catalog endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..catalog import CatalogItem, CatalogItemChanges, CatalogItemDraft


class PdfResponse(BaseModel):
    """Public view of a catalog item; the asset location is never exposed."""

    id: str
    title: str
    language: str
    price: Decimal
    description: str
    cover_image_url: str = Field(alias="coverImageUrl")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_item(cls, item: CatalogItem) -> "PdfResponse":
        return cls(
            id=item.id,
            title=item.title,
            language=item.language,
            price=item.price,
            description=item.description,
            cover_image_url=item.cover_image_url,
            created_at=item.created_at,
        )


class AdminPdfResponse(PdfResponse):
    pdf_file_url: str = Field(alias="pdfFileUrl")

    @classmethod
    def from_item(cls, item: CatalogItem) -> "AdminPdfResponse":
        return cls(
            id=item.id,
            title=item.title,
            language=item.language,
            price=item.price,
            description=item.description,
            cover_image_url=item.cover_image_url,
            pdf_file_url=item.pdf_file_url,
            created_at=item.created_at,
        )


class PdfListResponse(BaseModel):
    pdfs: List[PdfResponse]


class PdfDetailResponse(BaseModel):
    pdf: PdfResponse


class AdminPdfDetailResponse(BaseModel):
    message: str
    pdf: AdminPdfResponse


class LanguageListResponse(BaseModel):
    languages: List[str]


class PdfCreateRequest(BaseModel):
    title: str
    language: str
    price: Decimal
    description: str
    cover_image_url: str = Field(alias="coverImageUrl")
    pdf_file_url: str = Field(alias="pdfFileUrl")

    model_config = ConfigDict(populate_by_name=True)

    def to_draft(self) -> CatalogItemDraft:
        return CatalogItemDraft(**self.model_dump())


class PdfUpdateRequest(BaseModel):
    title: Optional[str] = None
    language: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = Field(alias="coverImageUrl", default=None)
    pdf_file_url: Optional[str] = Field(alias="pdfFileUrl", default=None)

    model_config = ConfigDict(populate_by_name=True)

    def to_changes(self) -> CatalogItemChanges:
        return CatalogItemChanges(**self.model_dump())
