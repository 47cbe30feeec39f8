"""Signed, time-limited session credentials."""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt

from ...errors import Unauthenticated


def hash_token(token: str) -> str:
    """One-way hash used for storing single-use reset tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionTokenCodec:
    """Issues and validates HS256 JWTs whose subject is the identity id."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=7),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not secret:
            raise ValueError("secret must be provided")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, identity_id: str, *, expires_delta: Optional[timedelta] = None) -> str:
        issued_at = self._clock()
        payload = {
            "sub": identity_id,
            "iat": issued_at,
            "exp": issued_at + (self._ttl if expires_delta is None else expires_delta),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> str:
        """Return the identity id asserted by ``token``.

        Raises :class:`Unauthenticated` for tokens that are malformed,
        carry a bad signature, have expired, or lack a subject.
        """

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise Unauthenticated("Invalid or expired session") from exc
        subject = payload.get("sub")
        if not subject:
            raise Unauthenticated("Invalid or expired session")
        return str(subject)


__all__ = ["SessionTokenCodec", "hash_token"]
