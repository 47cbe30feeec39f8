"""API route streaming purchased PDFs."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..identity import Identity
from ..services.purchases import get_asset_streamer, get_download_gate
from .dependencies import get_current_identity

router = APIRouter(prefix="/api/download", tags=["downloads"])


@router.get("/{pdf_id}")
def download_pdf(pdf_id: str, *, identity: Identity = Depends(get_current_identity)) -> StreamingResponse:
    reference = get_download_gate().authorize_retrieval(identity.id, pdf_id)
    asset = get_asset_streamer().open(reference.url)
    headers = {"Content-Disposition": f'attachment; filename="{reference.filename}"'}
    if asset.content_length:
        headers["Content-Length"] = asset.content_length
    return StreamingResponse(asset.chunks, media_type="application/pdf", headers=headers)


__all__ = ["router"]
