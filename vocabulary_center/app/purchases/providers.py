"""Payment processor adapters and webhook signature verification."""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote
from uuid import uuid4

import httpx

from ...errors import InvalidSignature, NotFound, UpstreamFailure
from .models import CheckoutSession, PaymentSession

logger = logging.getLogger("purchases")

SIGNATURE_SCHEME = "v1"


def sign_webhook_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a ``Stripe-Signature`` header value for ``payload``."""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = _compute_signature(payload, secret, timestamp)
    return f"t={timestamp},{SIGNATURE_SCHEME}={signature}"


def _compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def _parse_signature_header(header: str) -> Tuple[Optional[int], List[str]]:
    timestamp: Optional[int] = None
    signatures: List[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == SIGNATURE_SCHEME and value:
            signatures.append(value)
    return timestamp, signatures


def verify_webhook_signature(
    payload: bytes,
    header: Optional[str],
    secret: Optional[str],
    *,
    tolerance: int = 300,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """Authenticate a webhook body and return its decoded JSON.

    Raises :class:`InvalidSignature` when the header is missing or malformed,
    no ``v1`` signature matches, or the timestamp falls outside ``tolerance``.
    """

    if not secret:
        raise InvalidSignature("Webhook secret is not configured")
    if not header:
        raise InvalidSignature("Missing webhook signature")

    timestamp, signatures = _parse_signature_header(header)
    if timestamp is None or not signatures:
        raise InvalidSignature("Malformed webhook signature header")

    expected = _compute_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise InvalidSignature("Webhook signature does not match payload")

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise InvalidSignature("Webhook timestamp outside the tolerance window")

    try:
        event = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise InvalidSignature("Webhook payload is not valid JSON") from exc
    if not isinstance(event, dict):
        raise InvalidSignature("Webhook payload is not an event object")
    return event


def _form_encode(data: Mapping[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested mappings and lists into bracketed form fields."""

    fields: List[Tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            fields.extend(_form_encode(value, name))
        elif isinstance(value, (list, tuple)):
            for index, entry in enumerate(value):
                entry_name = f"{name}[{index}]"
                if isinstance(entry, Mapping):
                    fields.extend(_form_encode(entry, entry_name))
                else:
                    fields.append((entry_name, str(entry)))
        elif isinstance(value, bool):
            fields.append((name, "true" if value else "false"))
        else:
            fields.append((name, str(value)))
    return fields


class StripePaymentProvider:
    """Talks to the Stripe REST API for hosted checkout sessions."""

    def __init__(
        self,
        secret_key: str,
        *,
        api_base: str = "https://api.stripe.com/v1",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must be provided")
        self._secret_key = secret_key
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        product_name: str,
        description: str,
        image_url: Optional[str],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
        client_reference_id: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        product: Dict[str, Any] = {"name": product_name, "description": description}
        if image_url:
            product["images"] = [image_url]
        form = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": product,
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "customer_email": customer_email,
            "metadata": metadata,
        }
        data = self._request("POST", "/checkout/sessions", form=form)
        session_id = data.get("id")
        url = data.get("url")
        if not session_id or not url:
            raise UpstreamFailure("Payment processor returned an incomplete checkout session")
        return CheckoutSession(session_id=session_id, url=url)

    def retrieve_checkout_session(self, session_id: str) -> PaymentSession:
        data = self._request("GET", f"/checkout/sessions/{quote(session_id, safe='')}")
        return PaymentSession.from_processor(data)

    def _request(self, method: str, path: str, *, form: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self._api_base}{path}"
        try:
            response = self._client.request(
                method,
                url,
                data=dict(_form_encode(form)) if form else None,
                headers={"Authorization": f"Bearer {self._secret_key}"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Payment processor request %s %s failed: %s", method, path, exc)
            raise UpstreamFailure("Payment processor unavailable") from exc

        if response.status_code == 404:
            raise NotFound("Checkout session not found")
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Payment processor rejected %s %s status=%s: %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise UpstreamFailure("Payment processor request failed", detail={"reason": message})
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamFailure("Payment processor returned malformed JSON") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {response.status_code}"


class LocalSandboxPaymentProvider:
    """In-memory processor for local development and tests."""

    def __init__(self, checkout_base_url: str = "https://payments.local/checkout") -> None:
        self._checkout_base_url = checkout_base_url.rstrip("/")
        self._sessions: Dict[str, PaymentSession] = {}

    def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        product_name: str,
        description: str,
        image_url: Optional[str],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
        client_reference_id: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        session_id = f"cs_{uuid4().hex}"
        url = f"{self._checkout_base_url}/{session_id}"
        self._sessions[session_id] = PaymentSession(
            session_id=session_id,
            payment_status="unpaid",
            amount_total=amount_cents,
            currency=currency,
            customer_email=customer_email,
            url=url,
            metadata=dict(metadata),
        )
        logger.debug("Sandbox checkout %s for %s (%s cents)", session_id, product_name, amount_cents)
        return CheckoutSession(session_id=session_id, url=url)

    def retrieve_checkout_session(self, session_id: str) -> PaymentSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFound("Checkout session not found") from None

    def mark_paid(self, session_id: str, payment_intent_id: Optional[str] = None) -> PaymentSession:
        """Simulate the customer completing payment."""

        session = self.retrieve_checkout_session(session_id).model_copy(
            update={
                "payment_status": "paid",
                "payment_intent_id": payment_intent_id or f"pi_{uuid4().hex}",
            }
        )
        self._sessions[session_id] = session
        return session


__all__ = [
    "LocalSandboxPaymentProvider",
    "StripePaymentProvider",
    "sign_webhook_payload",
    "verify_webhook_signature",
]
