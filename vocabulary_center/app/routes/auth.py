"""API routes for registration, login, OAuth and password resets."""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from ...config import AppConfig, get_app_config
from ...errors import StoreError
from ..identity import Identity
from ..schemas.auth import (
    AuthResponse,
    CurrentUserResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from ..services.auth import get_auth_service, get_google_client
from .dependencies import get_current_identity

logger = logging.getLogger("auth")

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE = 600

router = APIRouter(prefix="/api/auth", tags=["auth"])


def set_session_cookie(response: Response, token: str, config: AppConfig) -> None:
    response.set_cookie(
        key=config.session_cookie_name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=config.session_cookie_secure,
        max_age=config.session_max_age_seconds,
        path="/",
    )


def clear_session_cookie(response: Response, config: AppConfig) -> None:
    response.delete_cookie(
        config.session_cookie_name,
        path="/",
        httponly=True,
        samesite="strict",
        secure=config.session_cookie_secure,
    )


def _login_redirect(config: AppConfig, error: str) -> RedirectResponse:
    return RedirectResponse(f"{config.client_url}/login?error={error}", status_code=status.HTTP_302_FOUND)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, response: Response) -> AuthResponse:
    session = get_auth_service().register(payload.name, payload.email, payload.password)
    set_session_cookie(response, session.token, get_app_config())
    return AuthResponse.from_session(session, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, response: Response) -> AuthResponse:
    session = get_auth_service().login(payload.email, payload.password)
    set_session_cookie(response, session.token, get_app_config())
    return AuthResponse.from_session(session, "Login successful")


@router.get("/google")
def google_login() -> RedirectResponse:
    config = get_app_config()
    client = get_google_client()
    if client is None:
        return _login_redirect(config, "oauth_not_configured")

    state = secrets.token_urlsafe(16)
    redirect = RedirectResponse(client.authorization_url(state), status_code=status.HTTP_302_FOUND)
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        httponly=True,
        samesite="lax",
        secure=config.session_cookie_secure,
        max_age=OAUTH_STATE_MAX_AGE,
        path="/api/auth",
    )
    return redirect


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
) -> RedirectResponse:
    config = get_app_config()
    client = get_google_client()
    if client is None:
        return _login_redirect(config, "oauth_not_configured")

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if error or not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("Google OAuth callback rejected (error=%s, state_ok=%s)", error, state == expected_state)
        return _login_redirect(config, "oauth_failed")

    service = get_auth_service()
    try:
        identity = service.login_with_external_identity(client.fetch_profile(code))
    except StoreError as exc:
        logger.warning("Google OAuth login failed: %s", exc.message)
        return _login_redirect(config, "oauth_failed")

    token = service.issue_session(identity)
    redirect = RedirectResponse(
        f"{config.client_url}/auth/google/callback?token={token}",
        status_code=status.HTTP_302_FOUND,
    )
    set_session_cookie(redirect, token, config)
    redirect.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth")
    return redirect


@router.get("/me", response_model=CurrentUserResponse)
def read_current_identity(identity: Identity = Depends(get_current_identity)) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserResponse.from_identity(identity))


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    # Sessions are stateless; the client discards its copy.
    clear_session_cookie(response, get_app_config())
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest) -> MessageResponse:
    return MessageResponse(message=get_auth_service().request_password_reset(payload.email))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest) -> MessageResponse:
    get_auth_service().reset_password(payload.token, payload.password)
    return MessageResponse(
        message="Password has been reset successfully. You can now login with your new password."
    )


__all__ = ["clear_session_cookie", "router", "set_session_cookie"]
