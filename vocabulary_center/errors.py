"""Domain errors surfaced to API callers and their FastAPI handlers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal Server Error"


@dataclass
class StoreError(Exception):
    """Base class for actionable failures raised by the storefront core."""

    message: str
    detail: Optional[Mapping[str, Any]] = None

    code: ClassVar[str] = "internal_error"
    status_code: ClassVar[int] = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def payload(self) -> Dict[str, Any]:
        """Serialized representation suitable for JSON responses."""

        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            body.update(self.detail)
        return body


class ValidationFailed(StoreError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(StoreError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class AlreadyOwned(Conflict):
    code = "already_owned"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(StoreError):
    """Credentials were presented but rejected."""

    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Unauthenticated(StoreError):
    """No session, or the session token is invalid or expired."""

    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(StoreError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(StoreError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidToken(StoreError):
    code = "invalid_token"
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentIncomplete(StoreError):
    code = "payment_incomplete"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidSignature(StoreError):
    code = "invalid_signature"
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamFailure(StoreError):
    """The payment processor, identity provider, mailer or asset store failed."""

    code = "upstream_failure"
    status_code = status.HTTP_502_BAD_GATEWAY


def register_exception_handlers(app: FastAPI, *, production: bool) -> None:
    """Install JSON error handlers for domain, validation and unexpected errors."""

    @app.exception_handler(StoreError)
    async def _handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.payload)

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", "Invalid value"),
            }
            for error in exc.errors()
        ]
        failure = ValidationFailed("Request validation failed", detail={"errors": errors})
        return JSONResponse(status_code=failure.status_code, content=failure.payload)

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content: Dict[str, Any] = {"error": StoreError.code, "message": GENERIC_ERROR_MESSAGE}
        if not production:
            content["detail"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


__all__ = [
    "AlreadyOwned",
    "Conflict",
    "Forbidden",
    "InvalidSignature",
    "InvalidToken",
    "NotFound",
    "PaymentIncomplete",
    "StoreError",
    "Unauthenticated",
    "Unauthorized",
    "UpstreamFailure",
    "ValidationFailed",
    "register_exception_handlers",
]
