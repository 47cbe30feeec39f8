"""Catalog store for purchasable vocabulary guides."""

from .models import (
    CatalogItem,
    CatalogItemChanges,
    CatalogItemDraft,
    from_minor_units,
    to_minor_units,
)
from .service import CatalogRepository, CatalogService

__all__ = [
    "CatalogItem",
    "CatalogItemChanges",
    "CatalogItemDraft",
    "CatalogRepository",
    "CatalogService",
    "from_minor_units",
    "to_minor_units",
]
