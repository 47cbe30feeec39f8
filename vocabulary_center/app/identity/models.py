"""Domain models for storefront identities."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Authorization role attached to an identity."""

    USER = "user"
    ADMIN = "admin"


def normalize_email(value: str) -> str:
    return value.strip().lower()


class Identity(BaseModel):
    """A registered customer or administrator."""

    id: str
    email: str
    name: str
    role: Role = Role.USER
    password_hash: Optional[str] = Field(default=None, repr=False)
    google_id: Optional[str] = None
    reset_password_token: Optional[str] = Field(default=None, repr=False)
    reset_password_expires: Optional[datetime] = None
    purchased_items: Tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ExternalProfile(BaseModel):
    """Verified profile returned by the external OAuth identity provider."""

    external_id: str
    email: str
    display_name: str = ""
    email_verified: bool = True

    model_config = ConfigDict(frozen=True)


class AuthenticatedSession(BaseModel):
    """An identity together with the signed session credential issued for it."""

    identity: Identity
    token: str

    model_config = ConfigDict(frozen=True)
