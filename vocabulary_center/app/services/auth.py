"""Application wiring for authentication."""
from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from ...config import get_app_config
from ...db import get_connection_factory
from ...mail import EmailProvider, build_reset_url, create_email_provider, render_password_reset
from ..identity import AuthService, ResetNotifier, SessionTokenCodec
from ..identity.repository import PostgresIdentityRepository
from ..oauth import GoogleOAuthClient

logger = logging.getLogger("auth")


class EmailResetNotifier(ResetNotifier):
    """Sends the reset link through the configured email provider."""

    def __init__(self, provider: EmailProvider, *, client_url: str, ttl_minutes: int) -> None:
        self._provider = provider
        self._client_url = client_url
        self._ttl_minutes = ttl_minutes

    def send_password_reset(self, email: str, reset_token: str) -> None:
        reset_url = build_reset_url(self._client_url, reset_token)
        subject, text_body, html_body = render_password_reset(reset_url, self._ttl_minutes)
        log_context = {
            **self._provider.describe(),
            "email_recipient": email,
            "email_type": "password_reset",
        }
        logger.info(
            "Dispatching password reset email",
            extra={**log_context, "email_event": "password_reset.dispatch.start"},
        )
        try:
            self._provider.send_email(email, subject, html_body, text_body)
        except Exception:
            logger.exception(
                "Failed to send password reset email",
                extra={**log_context, "email_event": "password_reset.dispatch.error"},
            )
            raise
        logger.info(
            "Password reset email dispatched",
            extra={**log_context, "email_event": "password_reset.dispatch.success"},
        )


@lru_cache(maxsize=1)
def get_email_provider() -> EmailProvider:
    config = get_app_config()
    return create_email_provider(config.email, production=config.is_production)


@lru_cache(maxsize=1)
def get_session_codec() -> SessionTokenCodec:
    config = get_app_config()
    return SessionTokenCodec(
        config.jwt_secret_key,
        algorithm=config.jwt_algorithm,
        ttl=timedelta(minutes=config.jwt_exp_minutes),
    )


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    config = get_app_config()
    notifier = EmailResetNotifier(
        get_email_provider(),
        client_url=config.client_url,
        ttl_minutes=config.password_reset_ttl_minutes,
    )
    return AuthService(
        PostgresIdentityRepository(get_connection_factory()),
        get_session_codec(),
        notifier,
        production=config.is_production,
        reset_ttl=timedelta(minutes=config.password_reset_ttl_minutes),
        reset_token_bytes=config.reset_token_bytes,
    )


@lru_cache(maxsize=1)
def get_google_client() -> Optional[GoogleOAuthClient]:
    """Return the OAuth client, or ``None`` when credentials are missing."""

    config = get_app_config()
    if not config.google_configured:
        logger.warning("Google OAuth credentials are missing; Google login is disabled")
        return None
    return GoogleOAuthClient(
        config.google_client_id,
        config.google_client_secret,
        config.google_callback_url,
        timeout=config.http_timeout_seconds,
    )


__all__ = [
    "EmailResetNotifier",
    "get_auth_service",
    "get_email_provider",
    "get_google_client",
    "get_session_codec",
]
