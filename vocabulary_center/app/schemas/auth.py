"""API schemas for authentication endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..identity import AuthenticatedSession, Identity, Role


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    purchased_pdfs: List[str] = Field(alias="purchasedPdfs", default_factory=list)
    created_at: Optional[datetime] = Field(alias="createdAt", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_identity(cls, identity: Identity) -> "UserResponse":
        return cls(
            id=identity.id,
            name=identity.name,
            email=identity.email,
            role=identity.role,
            purchased_pdfs=list(identity.purchased_items),
            created_at=identity.created_at,
        )


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse

    @classmethod
    def from_session(cls, session: AuthenticatedSession, message: str) -> "AuthResponse":
        return cls(message=message, token=session.token, user=UserResponse.from_identity(session.identity))


class CurrentUserResponse(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
