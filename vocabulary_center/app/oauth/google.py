"""Google OAuth 2.0 authorization-code client."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ...errors import UpstreamFailure
from ..identity.models import ExternalProfile

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ("openid", "profile", "email")


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("Google OAuth credentials are not configured")
        if not client_id.endswith(".apps.googleusercontent.com"):
            logger.warning("GOOGLE_CLIENT_ID does not look like a Google client id")
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def authorization_url(self, state: Optional[str] = None) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "online",
            "prompt": "select_account",
        }
        if state:
            params["state"] = state
        return str(httpx.URL(AUTHORIZE_URL, params=params))

    def fetch_profile(self, code: str) -> ExternalProfile:
        """Exchange an authorization code and load the account's profile."""

        if not code:
            raise UpstreamFailure("Missing authorization code")
        token = self._call(
            "POST",
            TOKEN_URL,
            data={
                "code": code,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": self._redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        access_token = token.get("access_token")
        if not access_token:
            raise UpstreamFailure("Identity provider did not return an access token")

        info = self._call("GET", USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        subject = info.get("sub")
        email = info.get("email")
        if not subject or not email:
            raise UpstreamFailure("Identity provider profile is missing id or email")
        return ExternalProfile(
            external_id=str(subject),
            email=str(email),
            display_name=str(info.get("name") or ""),
            email_verified=bool(info.get("email_verified", False)),
        )

    def _call(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Google OAuth request to %s failed: %s", url, exc)
            raise UpstreamFailure("Identity provider unavailable") from exc
        if response.status_code >= 400:
            logger.warning("Google OAuth %s answered %s: %s", url, response.status_code, response.text[:200])
            raise UpstreamFailure("Identity provider rejected the request")
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamFailure("Identity provider returned malformed JSON") from exc


__all__ = ["GoogleOAuthClient"]
