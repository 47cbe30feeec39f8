"""PostgreSQL persistence for catalog items."""
from __future__ import annotations

from typing import List, Optional

from psycopg2.extensions import connection as PgConnection

from ...db import ConnectionFactory, managed_cursor
from .models import CatalogItem

_COLUMNS = "id, title, language, price, description, cover_image_url, pdf_file_url, created_at"


def _row_to_item(row: dict) -> CatalogItem:
    return CatalogItem(
        id=row["id"],
        title=row["title"],
        language=row["language"],
        price=row["price"],
        description=row["description"],
        cover_image_url=row["cover_image_url"],
        pdf_file_url=row["pdf_file_url"],
        created_at=row["created_at"],
    )


class PostgresCatalogRepository:
    """Concrete repository persisting catalog items in PostgreSQL."""

    def __init__(self, connect: ConnectionFactory, *, conn: Optional[PgConnection] = None) -> None:
        self._connect = connect
        self._conn = conn

    def get(self, item_id: str) -> Optional[CatalogItem]:
        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(f"SELECT {_COLUMNS} FROM catalog_items WHERE id = %s LIMIT 1", (item_id,))
            row = cursor.fetchone()
            return _row_to_item(row) if row else None

    def list(self, *, language: Optional[str] = None) -> List[CatalogItem]:
        with managed_cursor(self._connect, self._conn) as cursor:
            if language:
                cursor.execute(
                    f"SELECT {_COLUMNS} FROM catalog_items WHERE language = %s ORDER BY created_at DESC",
                    (language,),
                )
            else:
                cursor.execute(f"SELECT {_COLUMNS} FROM catalog_items ORDER BY created_at DESC")
            return [_row_to_item(row) for row in cursor.fetchall() or []]

    def list_languages(self) -> List[str]:
        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute("SELECT DISTINCT language FROM catalog_items ORDER BY language")
            return [row["language"] for row in cursor.fetchall() or []]

    def save(self, item: CatalogItem) -> CatalogItem:
        """Insert or update a catalog item."""

        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(
                f"""
                INSERT INTO catalog_items (
                    id, title, language, price, description,
                    cover_image_url, pdf_file_url, created_at
                )
                VALUES (%(id)s, %(title)s, %(language)s, %(price)s, %(description)s,
                        %(cover_image_url)s, %(pdf_file_url)s, %(created_at)s)
                ON CONFLICT (id) DO UPDATE SET
                    title = EXCLUDED.title,
                    language = EXCLUDED.language,
                    price = EXCLUDED.price,
                    description = EXCLUDED.description,
                    cover_image_url = EXCLUDED.cover_image_url,
                    pdf_file_url = EXCLUDED.pdf_file_url
                RETURNING {_COLUMNS}
                """,
                item.model_dump(),
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist catalog item")
            return _row_to_item(row)

    def delete(self, item_id: str) -> bool:
        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute("DELETE FROM catalog_items WHERE id = %s", (item_id,))
            return cursor.rowcount > 0


__all__ = ["PostgresCatalogRepository"]
