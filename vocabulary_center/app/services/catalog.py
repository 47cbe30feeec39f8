"""Application wiring for the catalog store."""
from __future__ import annotations

from functools import lru_cache

from ...db import get_connection_factory
from ..catalog import CatalogService
from ..catalog.repository import PostgresCatalogRepository


@lru_cache(maxsize=1)
def get_catalog_repository() -> PostgresCatalogRepository:
    return PostgresCatalogRepository(get_connection_factory())


@lru_cache(maxsize=1)
def get_catalog_service() -> CatalogService:
    return CatalogService(get_catalog_repository())


__all__ = ["get_catalog_repository", "get_catalog_service"]
