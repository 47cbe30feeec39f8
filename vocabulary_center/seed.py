"""Populate an empty catalog with sample vocabulary guides."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from dotenv import load_dotenv

load_dotenv()

from vocabulary_center.app.catalog import CatalogItemDraft, CatalogService  # noqa: E402
from vocabulary_center.app.catalog.repository import PostgresCatalogRepository  # noqa: E402
from vocabulary_center.db import ensure_schema, get_connection_factory  # noqa: E402

logger = logging.getLogger("seed")

_COVER = "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400"

SAMPLE_ITEMS: List[CatalogItemDraft] = [
    CatalogItemDraft(
        title="Spanish Vocabulary Essentials",
        language="Spanish",
        price=Decimal("9.99"),
        description="Comprehensive Spanish vocabulary guide with 1000+ essential words and phrases.",
        cover_image_url=_COVER,
        pdf_file_url="https://example.com/spanish-vocab.pdf",
    ),
    CatalogItemDraft(
        title="French Language Mastery",
        language="French",
        price=Decimal("12.99"),
        description="French vocabulary for everyday conversations, business terms and cultural expressions.",
        cover_image_url=_COVER,
        pdf_file_url="https://example.com/french-vocab.pdf",
    ),
    CatalogItemDraft(
        title="German Vocabulary Builder",
        language="German",
        price=Decimal("10.99"),
        description="Categorized German word lists with example sentences and pronunciation guides.",
        cover_image_url=_COVER,
        pdf_file_url="https://example.com/german-vocab.pdf",
    ),
    CatalogItemDraft(
        title="Italian Conversational Guide",
        language="Italian",
        price=Decimal("8.99"),
        description="Practical Italian vocabulary organized by topics like travel, food and shopping.",
        cover_image_url=_COVER,
        pdf_file_url="https://example.com/italian-vocab.pdf",
    ),
    CatalogItemDraft(
        title="Japanese Hiragana & Katakana",
        language="Japanese",
        price=Decimal("14.99"),
        description="Japanese writing systems with vocabulary lists, stroke order and practice exercises.",
        cover_image_url=_COVER,
        pdf_file_url="https://example.com/japanese-vocab.pdf",
    ),
    CatalogItemDraft(
        title="Mandarin Chinese Basics",
        language="Chinese",
        price=Decimal("13.99"),
        description="Essential Mandarin vocabulary with Pinyin, tones and common daily phrases.",
        cover_image_url=_COVER,
        pdf_file_url="https://example.com/chinese-vocab.pdf",
    ),
]


def seed_catalog(service: CatalogService) -> int:
    """Insert the sample items when the catalog is empty; return how many were added."""

    if service.list_items():
        logger.info("Catalog already populated; skipping seed")
        return 0
    for draft in SAMPLE_ITEMS:
        service.create_item(draft)
    return len(SAMPLE_ITEMS)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    connect = get_connection_factory()
    ensure_schema(connect)
    created = seed_catalog(CatalogService(PostgresCatalogRepository(connect)))
    logger.info("Seeded %d catalog items", created)


if __name__ == "__main__":
    main()
