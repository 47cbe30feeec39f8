"""PostgreSQL connection helpers and schema definition."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Iterator, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .config import AppConfig, get_app_config

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], PgConnection]

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS identities (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        name TEXT NOT NULL,
        password_hash TEXT,
        role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
        google_id TEXT,
        reset_password_token TEXT,
        reset_password_expires TIMESTAMPTZ,
        purchased_items TEXT[] NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CHECK (password_hash IS NOT NULL OR google_id IS NOT NULL)
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS identities_email_key ON identities (LOWER(email))",
    "CREATE UNIQUE INDEX IF NOT EXISTS identities_google_id_key ON identities (google_id) WHERE google_id IS NOT NULL",
    "CREATE INDEX IF NOT EXISTS identities_reset_token_idx ON identities (reset_password_token) WHERE reset_password_token IS NOT NULL",
    """
    CREATE TABLE IF NOT EXISTS catalog_items (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        language TEXT NOT NULL,
        price NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
        description TEXT NOT NULL,
        cover_image_url TEXT NOT NULL,
        pdf_file_url TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY,
        identity_id TEXT NOT NULL REFERENCES identities (id),
        item_id TEXT NOT NULL,
        payment_intent_id TEXT NOT NULL,
        amount NUMERIC(10, 2) NOT NULL CHECK (amount >= 0),
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'completed', 'failed')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT orders_payment_intent_id_key UNIQUE (payment_intent_id)
    )
    """,
    # Orders outlive catalog edits; older databases carried a foreign key here.
    "ALTER TABLE orders DROP CONSTRAINT IF EXISTS orders_item_id_fkey",
    "CREATE INDEX IF NOT EXISTS orders_identity_item_idx ON orders (identity_id, item_id)",
)


def connection_factory(config: AppConfig) -> ConnectionFactory:
    """Return a callable opening new connections with the configured parameters."""

    params = config.db_params()

    def _connect() -> PgConnection:
        return psycopg2.connect(**params)

    return _connect


@lru_cache(maxsize=1)
def get_connection_factory() -> ConnectionFactory:
    return connection_factory(get_app_config())


@contextmanager
def managed_cursor(
    connect: ConnectionFactory,
    conn: Optional[PgConnection] = None,
) -> Iterator[PgCursor]:
    """Yield a ``RealDictCursor``, committing or rolling back when we own the connection."""

    if conn is not None:
        cursor = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        try:
            yield cursor
        finally:
            cursor.close()
        return

    connection = connect()
    try:
        cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        try:
            yield cursor
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            cursor.close()
    finally:
        connection.close()


def ensure_schema(connect: ConnectionFactory) -> None:
    """Create tables and indexes that do not exist yet."""

    with managed_cursor(connect) as cursor:
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
    logger.info("Database schema verified (%d statements)", len(SCHEMA_STATEMENTS))


__all__ = [
    "ConnectionFactory",
    "SCHEMA_STATEMENTS",
    "connection_factory",
    "ensure_schema",
    "get_connection_factory",
    "managed_cursor",
]
