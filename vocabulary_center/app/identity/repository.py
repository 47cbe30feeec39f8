"""PostgreSQL persistence for identities."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

import psycopg2.errors
from psycopg2.extensions import connection as PgConnection

from ...db import ConnectionFactory, managed_cursor
from ...errors import Conflict, NotFound
from .models import Identity, Role

_COLUMNS = """
    id, email, name, password_hash, role, google_id,
    reset_password_token, reset_password_expires, purchased_items, created_at
"""


def _row_to_identity(row: dict) -> Identity:
    return Identity(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        role=Role(row["role"]),
        password_hash=row.get("password_hash"),
        google_id=row.get("google_id"),
        reset_password_token=row.get("reset_password_token"),
        reset_password_expires=row.get("reset_password_expires"),
        purchased_items=tuple(row.get("purchased_items") or ()),
        created_at=row["created_at"],
    )


class PostgresIdentityRepository:
    """Concrete repository persisting identities in PostgreSQL."""

    def __init__(self, connect: ConnectionFactory, *, conn: Optional[PgConnection] = None) -> None:
        self._connect = connect
        self._conn = conn

    def _cursor(self):
        return managed_cursor(self._connect, self._conn)

    def _fetch_one(self, where: str, params: tuple) -> Optional[Identity]:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT {_COLUMNS} FROM identities WHERE {where} LIMIT 1", params)
            row = cursor.fetchone()
            return _row_to_identity(row) if row else None

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        return self._fetch_one("id = %s", (identity_id,))

    def get_by_email(self, email: str) -> Optional[Identity]:
        return self._fetch_one("LOWER(email) = LOWER(%s)", (email,))

    def get_by_google_id(self, google_id: str) -> Optional[Identity]:
        return self._fetch_one("google_id = %s", (google_id,))

    def create(self, identity: Identity) -> Identity:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    f"""
                    INSERT INTO identities (
                        id, email, name, password_hash, role, google_id, created_at
                    )
                    VALUES (%(id)s, %(email)s, %(name)s, %(password_hash)s,
                            %(role)s, %(google_id)s, %(created_at)s)
                    RETURNING {_COLUMNS}
                    """,
                    {
                        "id": identity.id,
                        "email": identity.email,
                        "name": identity.name,
                        "password_hash": identity.password_hash,
                        "role": identity.role.value,
                        "google_id": identity.google_id,
                        "created_at": identity.created_at,
                    },
                )
                row = cursor.fetchone()
        except psycopg2.errors.UniqueViolation as exc:
            raise Conflict("User already exists with this email") from exc
        if not row:
            raise RuntimeError("Failed to persist identity")
        return _row_to_identity(row)

    def link_google_id(self, identity_id: str, google_id: str) -> Identity:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    f"""
                    UPDATE identities
                    SET google_id = %s
                    WHERE id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (google_id, identity_id),
                )
                row = cursor.fetchone()
        except psycopg2.errors.UniqueViolation as exc:
            raise Conflict("External account is already linked to another user") from exc
        if not row:
            raise NotFound("User not found")
        return _row_to_identity(row)

    def set_reset_token(self, identity_id: str, token_hash: str, expires_at: datetime) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE identities
                SET reset_password_token = %s, reset_password_expires = %s
                WHERE id = %s
                """,
                (token_hash, expires_at, identity_id),
            )

    def clear_reset_token(self, identity_id: str) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE identities
                SET reset_password_token = NULL, reset_password_expires = NULL
                WHERE id = %s
                """,
                (identity_id,),
            )

    def consume_reset_token(
        self,
        token_hash: str,
        password_hash: str,
        *,
        now: datetime,
    ) -> Optional[Identity]:
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                UPDATE identities
                SET password_hash = %s,
                    reset_password_token = NULL,
                    reset_password_expires = NULL
                WHERE reset_password_token = %s
                  AND reset_password_expires > %s
                RETURNING {_COLUMNS}
                """,
                (password_hash, token_hash, now),
            )
            row = cursor.fetchone()
            return _row_to_identity(row) if row else None

    def set_role(self, identity_id: str, role: Role) -> Identity:
        with self._cursor() as cursor:
            cursor.execute(
                f"UPDATE identities SET role = %s WHERE id = %s RETURNING {_COLUMNS}",
                (role.value, identity_id),
            )
            row = cursor.fetchone()
        if not row:
            raise NotFound("User not found")
        return _row_to_identity(row)


__all__ = ["PostgresIdentityRepository"]
