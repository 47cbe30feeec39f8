"""PostgreSQL entitlement ledger: orders plus the materialized entitlement set."""
from __future__ import annotations

import logging
from typing import List, Optional

import psycopg2.errors
from psycopg2.extensions import connection as PgConnection

from ...db import ConnectionFactory, managed_cursor
from .models import Order, OrderStatus, OrderSummary

logger = logging.getLogger(__name__)

_COLUMNS = "id, identity_id, item_id, payment_intent_id, amount, status, created_at"


def _row_to_order(row: dict) -> Order:
    return Order(
        id=row["id"],
        identity_id=row["identity_id"],
        item_id=row["item_id"],
        payment_intent_id=row["payment_intent_id"],
        amount=row["amount"],
        status=OrderStatus(row["status"]),
        created_at=row["created_at"],
    )


class PostgresOrderLedger:
    """Concrete ledger persisting orders and entitlements in PostgreSQL."""

    def __init__(self, connect: ConnectionFactory, *, conn: Optional[PgConnection] = None) -> None:
        self._connect = connect
        self._conn = conn

    def create_order(self, order: Order) -> bool:
        """Insert ``order``; return ``False`` when its payment intent is already recorded."""

        try:
            with managed_cursor(self._connect, self._conn) as cursor:
                cursor.execute(
                    """
                    INSERT INTO orders (
                        id, identity_id, item_id, payment_intent_id, amount, status, created_at
                    )
                    VALUES (%(id)s, %(identity_id)s, %(item_id)s, %(payment_intent_id)s,
                            %(amount)s, %(status)s, %(created_at)s)
                    ON CONFLICT (payment_intent_id) DO NOTHING
                    """,
                    {
                        "id": order.id,
                        "identity_id": order.identity_id,
                        "item_id": order.item_id,
                        "payment_intent_id": order.payment_intent_id,
                        "amount": order.amount,
                        "status": order.status.value,
                        "created_at": order.created_at,
                    },
                )
                return cursor.rowcount == 1
        except psycopg2.errors.UniqueViolation:
            return False

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(
                f"SELECT {_COLUMNS} FROM orders WHERE payment_intent_id = %s LIMIT 1",
                (payment_intent_id,),
            )
            row = cursor.fetchone()
            return _row_to_order(row) if row else None

    def list_for_identity(self, identity_id: str) -> List[OrderSummary]:
        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(
                """
                SELECT o.id, o.identity_id, o.item_id, o.payment_intent_id, o.amount,
                       o.status, o.created_at,
                       c.title AS item_title, c.language AS item_language,
                       c.price AS item_price, c.cover_image_url AS item_cover_image_url
                FROM orders o
                LEFT JOIN catalog_items c ON c.id = o.item_id
                WHERE o.identity_id = %s
                ORDER BY o.created_at DESC
                """,
                (identity_id,),
            )
            rows = cursor.fetchall() or []
        return [
            OrderSummary(
                order=_row_to_order(row),
                item_title=row.get("item_title"),
                item_language=row.get("item_language"),
                item_price=row.get("item_price"),
                item_cover_image_url=row.get("item_cover_image_url"),
            )
            for row in rows
        ]

    def grant_item(self, identity_id: str, item_id: str) -> bool:
        """Add ``item_id`` to the entitlement set; ``False`` when already present."""

        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(
                """
                UPDATE identities
                SET purchased_items = array_append(purchased_items, %(item_id)s)
                WHERE id = %(identity_id)s
                  AND NOT (%(item_id)s = ANY(purchased_items))
                """,
                {"identity_id": identity_id, "item_id": item_id},
            )
            return cursor.rowcount == 1

    def has_item(self, identity_id: str, item_id: str) -> bool:
        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(
                "SELECT 1 FROM identities WHERE id = %s AND %s = ANY(purchased_items)",
                (identity_id, item_id),
            )
            return cursor.fetchone() is not None

    def rebuild_entitlements(self, identity_id: str) -> List[str]:
        """Merge items from completed orders back into the entitlement set.

        Returns the item ids that were missing and have been restored.
        """

        with managed_cursor(self._connect, self._conn) as cursor:
            cursor.execute(
                """
                SELECT DISTINCT o.item_id
                FROM orders o
                JOIN identities i ON i.id = o.identity_id
                WHERE o.identity_id = %s
                  AND o.status = %s
                  AND NOT (o.item_id = ANY(i.purchased_items))
                """,
                (identity_id, OrderStatus.COMPLETED.value),
            )
            missing = sorted(row["item_id"] for row in cursor.fetchall() or [])
            if missing:
                cursor.execute(
                    """
                    UPDATE identities
                    SET purchased_items = ARRAY(
                        SELECT DISTINCT unnest(purchased_items || %s::text[])
                    )
                    WHERE id = %s
                    """,
                    (missing, identity_id),
                )
                logger.warning("Restored %d entitlement(s) for identity %s", len(missing), identity_id)
            return missing


__all__ = ["PostgresOrderLedger"]
