"""Request dependencies resolving the calling identity."""
from __future__ import annotations

from typing import List, Optional

from fastapi import Depends, Header, Request

from ...config import get_app_config
from ...errors import Unauthenticated
from ..identity import Identity
from ..services.auth import get_auth_service


def _candidate_tokens(request: Request, authorization: Optional[str]) -> List[str]:
    """Session cookie first, then the bearer header."""

    candidates: List[str] = []
    cookie = request.cookies.get(get_app_config().session_cookie_name)
    if cookie:
        candidates.append(cookie)
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip() and credentials.strip() not in candidates:
            candidates.append(credentials.strip())
    return candidates


def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Identity:
    """Resolve the first valid credential; a stale cookie does not mask a valid bearer token."""

    service = get_auth_service()
    candidates = _candidate_tokens(request, authorization)
    if not candidates:
        return service.validate_session(None)

    failure: Optional[Unauthenticated] = None
    for token in candidates:
        try:
            return service.validate_session(token)
        except Unauthenticated as exc:
            failure = exc
    raise failure


def get_admin_identity(identity: Identity = Depends(get_current_identity)) -> Identity:
    return get_auth_service().require_admin(identity)


__all__ = ["get_admin_identity", "get_current_identity"]
