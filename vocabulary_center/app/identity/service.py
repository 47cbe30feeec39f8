"""Authentication: credentials, external identities, sessions and password resets."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol
from uuid import uuid4

from email_validator import EmailNotValidError, validate_email
from passlib.hash import bcrypt

from ...errors import (
    Conflict,
    Forbidden,
    InvalidToken,
    Unauthenticated,
    Unauthorized,
    UpstreamFailure,
    ValidationFailed,
)
from .models import AuthenticatedSession, ExternalProfile, Identity, Role, normalize_email
from .tokens import SessionTokenCodec, hash_token

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent."
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


class IdentityRepository(Protocol):
    """Persistence operations required by the authentication service."""

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        ...

    def get_by_email(self, email: str) -> Optional[Identity]:
        ...

    def get_by_google_id(self, google_id: str) -> Optional[Identity]:
        ...

    def create(self, identity: Identity) -> Identity:
        """Insert a new identity, raising :class:`Conflict` on a duplicate email or google id."""

    def link_google_id(self, identity_id: str, google_id: str) -> Identity:
        ...

    def set_reset_token(self, identity_id: str, token_hash: str, expires_at: datetime) -> None:
        ...

    def clear_reset_token(self, identity_id: str) -> None:
        ...

    def consume_reset_token(
        self,
        token_hash: str,
        password_hash: str,
        *,
        now: datetime,
    ) -> Optional[Identity]:
        """Replace the password of the identity holding an unexpired ``token_hash``.

        Clears the stored token in the same statement; returns ``None`` when
        no identity matches.
        """


class ResetNotifier(Protocol):
    """Delivers raw password reset tokens to their owner."""

    def send_password_reset(self, email: str, reset_token: str) -> None:
        ...


class AuthService:
    """Coordinates registration, login, session validation and password resets."""

    def __init__(
        self,
        repository: IdentityRepository,
        tokens: SessionTokenCodec,
        notifier: ResetNotifier,
        *,
        production: bool = False,
        reset_ttl: timedelta = timedelta(hours=1),
        reset_token_bytes: int = 32,
        bcrypt_rounds: int = 12,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._tokens = tokens
        self._notifier = notifier
        self._production = production
        self._reset_ttl = reset_ttl
        self._reset_token_bytes = reset_token_bytes
        self._hasher = bcrypt.using(rounds=bcrypt_rounds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def register(self, name: str, email: str, password: str) -> AuthenticatedSession:
        name = (name or "").strip()
        normalized = normalize_email(email or "")
        errors = _credential_errors(normalized, password)
        if not name:
            errors["name"] = "Name is required"
        if errors:
            raise ValidationFailed("Invalid registration details", detail={"errors": errors})

        if self._repository.get_by_email(normalized) is not None:
            raise Conflict("User already exists with this email")

        identity = self._repository.create(
            Identity(
                id=uuid4().hex,
                email=normalized,
                name=name,
                role=Role.USER,
                password_hash=self._hasher.hash(password),
                created_at=self._clock(),
            )
        )
        logger.info("Registered identity %s", identity.id)
        return AuthenticatedSession(identity=identity, token=self.issue_session(identity))

    def login(self, email: str, password: str) -> AuthenticatedSession:
        identity = self._repository.get_by_email(normalize_email(email or ""))
        if identity is None:
            raise Unauthorized(INVALID_CREDENTIALS_MESSAGE)
        if not identity.has_password:
            raise Unauthorized("Please sign in with Google")
        if not self._hasher.verify(password or "", identity.password_hash):
            raise Unauthorized(INVALID_CREDENTIALS_MESSAGE)
        return AuthenticatedSession(identity=identity, token=self.issue_session(identity))

    def login_with_external_identity(self, profile: ExternalProfile) -> Identity:
        """Resolve an OAuth profile by external id, then verified email, then create.

        The order matters: an identity that registered with a password under
        the same email must be linked rather than duplicated.
        """

        identity = self._repository.get_by_google_id(profile.external_id)
        if identity is not None:
            return identity

        if not profile.email_verified:
            raise Unauthorized("External account email is not verified")
        email = normalize_email(profile.email)

        identity = self._repository.get_by_email(email)
        if identity is not None:
            logger.info("Linking external account to identity %s", identity.id)
            return self._repository.link_google_id(identity.id, profile.external_id)

        candidate = Identity(
            id=uuid4().hex,
            email=email,
            name=profile.display_name.strip() or email.split("@", 1)[0],
            role=Role.USER,
            google_id=profile.external_id,
            created_at=self._clock(),
        )
        try:
            return self._repository.create(candidate)
        except Conflict:
            # Lost a race with a concurrent callback for the same account.
            existing = self._repository.get_by_google_id(profile.external_id) or self._repository.get_by_email(email)
            if existing is None:
                raise
            return existing

    def issue_session(self, identity: Identity) -> str:
        return self._tokens.issue(identity.id)

    def validate_session(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthenticated("Not authenticated")
        identity = self._repository.get_by_id(self._tokens.decode(token))
        if identity is None:
            raise Unauthenticated("Not authenticated")
        return identity

    def require_admin(self, identity: Identity) -> Identity:
        if not identity.is_admin:
            raise Forbidden("Admin access required")
        return identity

    def request_password_reset(self, email: str) -> str:
        """Issue a reset token when possible; the returned message never varies."""

        identity = self._repository.get_by_email(normalize_email(email or ""))
        if identity is None or not identity.has_password:
            logger.debug("Password reset requested for an address without a password login")
            return RESET_REQUESTED_MESSAGE

        raw_token = secrets.token_hex(self._reset_token_bytes)
        expires_at = self._clock() + self._reset_ttl
        self._repository.set_reset_token(identity.id, hash_token(raw_token), expires_at)

        try:
            self._notifier.send_password_reset(identity.email, raw_token)
        except Exception as exc:
            if self._production:
                self._repository.clear_reset_token(identity.id)
                logger.exception("Failed to send password reset email for identity %s", identity.id)
                raise UpstreamFailure("Failed to send reset email. Please try again later.") from exc
            logger.warning(
                "Password reset email failed for identity %s (%s); token for manual reset: %s",
                identity.id,
                exc,
                raw_token,
            )
        return RESET_REQUESTED_MESSAGE

    def reset_password(self, raw_token: str, new_password: str) -> Identity:
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                "Invalid password",
                detail={"errors": {"password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}},
            )
        if not raw_token:
            raise InvalidToken("Invalid or expired reset token. Please request a new password reset.")

        identity = self._repository.consume_reset_token(
            hash_token(raw_token),
            self._hasher.hash(new_password),
            now=self._clock(),
        )
        if identity is None:
            raise InvalidToken("Invalid or expired reset token. Please request a new password reset.")
        logger.info("Password reset completed for identity %s", identity.id)
        return identity


def _credential_errors(email: str, password: Optional[str]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        errors["email"] = "Please provide a valid email"
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return errors


__all__ = [
    "AuthService",
    "IdentityRepository",
    "MIN_PASSWORD_LENGTH",
    "RESET_REQUESTED_MESSAGE",
    "ResetNotifier",
]
