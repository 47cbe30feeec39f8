"""API routes exposing the catalog."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..identity import Identity
from ..schemas.auth import MessageResponse
from ..schemas.catalog import (
    AdminPdfDetailResponse,
    AdminPdfResponse,
    LanguageListResponse,
    PdfCreateRequest,
    PdfDetailResponse,
    PdfListResponse,
    PdfResponse,
    PdfUpdateRequest,
)
from ..services.catalog import get_catalog_service
from .dependencies import get_admin_identity

router = APIRouter(prefix="/api/pdfs", tags=["catalog"])


@router.get("", response_model=PdfListResponse)
def list_pdfs(language: Optional[str] = Query(None)) -> PdfListResponse:
    items = get_catalog_service().list_items(language=language)
    return PdfListResponse(pdfs=[PdfResponse.from_item(item) for item in items])


@router.get("/languages/list", response_model=LanguageListResponse)
def list_languages() -> LanguageListResponse:
    return LanguageListResponse(languages=get_catalog_service().list_languages())


@router.get("/{pdf_id}", response_model=PdfDetailResponse)
def get_pdf(pdf_id: str) -> PdfDetailResponse:
    return PdfDetailResponse(pdf=PdfResponse.from_item(get_catalog_service().get_item(pdf_id)))


@router.post("", response_model=AdminPdfDetailResponse, status_code=status.HTTP_201_CREATED)
def create_pdf(
    payload: PdfCreateRequest,
    *,
    admin: Identity = Depends(get_admin_identity),
) -> AdminPdfDetailResponse:
    item = get_catalog_service().create_item(payload.to_draft())
    return AdminPdfDetailResponse(message="PDF created successfully", pdf=AdminPdfResponse.from_item(item))


@router.put("/{pdf_id}", response_model=AdminPdfDetailResponse)
def update_pdf(
    pdf_id: str,
    payload: PdfUpdateRequest,
    *,
    admin: Identity = Depends(get_admin_identity),
) -> AdminPdfDetailResponse:
    item = get_catalog_service().update_item(pdf_id, payload.to_changes())
    return AdminPdfDetailResponse(message="PDF updated successfully", pdf=AdminPdfResponse.from_item(item))


@router.delete("/{pdf_id}", response_model=MessageResponse)
def delete_pdf(pdf_id: str, *, admin: Identity = Depends(get_admin_identity)) -> MessageResponse:
    get_catalog_service().delete_item(pdf_id)
    return MessageResponse(message="PDF deleted successfully")


__all__ = ["router"]
