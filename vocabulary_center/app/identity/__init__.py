"""Identity store and authentication component."""

from .models import AuthenticatedSession, ExternalProfile, Identity, Role, normalize_email
from .service import (
    MIN_PASSWORD_LENGTH,
    RESET_REQUESTED_MESSAGE,
    AuthService,
    IdentityRepository,
    ResetNotifier,
)
from .tokens import SessionTokenCodec, hash_token

__all__ = [
    "AuthService",
    "AuthenticatedSession",
    "ExternalProfile",
    "Identity",
    "IdentityRepository",
    "MIN_PASSWORD_LENGTH",
    "RESET_REQUESTED_MESSAGE",
    "ResetNotifier",
    "Role",
    "SessionTokenCodec",
    "hash_token",
    "normalize_email",
]
