"""Catalog lookups and administrator maintenance."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Protocol, Sequence
from uuid import uuid4

from ...errors import NotFound, ValidationFailed
from .models import CatalogItem, CatalogItemChanges, CatalogItemDraft

logger = logging.getLogger(__name__)


class CatalogRepository(Protocol):
    """Persistence operations required by the catalog service."""

    def get(self, item_id: str) -> Optional[CatalogItem]:
        ...

    def list(self, *, language: Optional[str] = None) -> Sequence[CatalogItem]:
        ...

    def list_languages(self) -> Sequence[str]:
        ...

    def save(self, item: CatalogItem) -> CatalogItem:
        ...

    def delete(self, item_id: str) -> bool:
        ...


class CatalogService:
    def __init__(self, repository: CatalogRepository) -> None:
        self._repository = repository

    def get_item(self, item_id: str) -> CatalogItem:
        item = self._repository.get(item_id)
        if item is None:
            raise NotFound("PDF not found")
        return item

    def list_items(self, *, language: Optional[str] = None) -> List[CatalogItem]:
        language = language.strip() if language else None
        return list(self._repository.list(language=language or None))

    def list_languages(self) -> List[str]:
        return sorted(set(self._repository.list_languages()))

    def create_item(self, draft: CatalogItemDraft) -> CatalogItem:
        errors = _validate_fields(draft.model_dump())
        for name in ("cover_image_url", "pdf_file_url"):
            if not (getattr(draft, name) or "").strip():
                errors[name] = "Asset reference is required"
        if errors:
            raise ValidationFailed("Invalid catalog item", detail={"errors": errors})

        item = CatalogItem(
            id=uuid4().hex,
            title=draft.title,
            language=draft.language,
            price=draft.price,
            description=draft.description,
            cover_image_url=draft.cover_image_url.strip(),
            pdf_file_url=draft.pdf_file_url.strip(),
            created_at=datetime.now(timezone.utc),
        )
        stored = self._repository.save(item)
        logger.info("Created catalog item %s (%s)", stored.id, stored.title)
        return stored

    def update_item(self, item_id: str, changes: CatalogItemChanges) -> CatalogItem:
        item = self.get_item(item_id)
        update = changes.model_dump(exclude_none=True)
        errors = _validate_fields(update)
        if errors:
            raise ValidationFailed("Invalid catalog item", detail={"errors": errors})
        if not update:
            return item
        stored = self._repository.save(CatalogItem.model_validate({**item.model_dump(), **update}))
        logger.info("Updated catalog item %s fields=%s", item_id, sorted(update))
        return stored

    def delete_item(self, item_id: str) -> None:
        if not self._repository.delete(item_id):
            raise NotFound("PDF not found")
        logger.info("Deleted catalog item %s", item_id)


def _validate_fields(values: Dict[str, object]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for name in ("title", "language", "description"):
        if name in values and not str(values[name] or "").strip():
            errors[name] = f"{name.capitalize()} cannot be empty"
    if "price" in values:
        try:
            price = Decimal(str(values["price"]))
        except InvalidOperation:
            price = Decimal(-1)
        if not price.is_finite() or price < 0:
            errors["price"] = "Price must be a positive number"
    return errors


__all__ = ["CatalogRepository", "CatalogService"]
