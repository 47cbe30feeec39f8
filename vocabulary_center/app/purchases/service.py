"""Purchase flow: checkout creation, payment verification and webhook reconciliation."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Sequence
from uuid import uuid4

from ...errors import AlreadyOwned, Forbidden, NotFound, PaymentIncomplete, ValidationFailed
from ..catalog.models import CatalogItem, from_minor_units
from ..identity.models import Identity
from ..orders.models import Order, OrderStatus, OrderSummary
from .models import (
    CHECKOUT_COMPLETED_EVENT,
    CheckoutSession,
    PaymentSession,
    PurchaseAuditEvent,
    PurchaseAuditEventType,
    ReconciliationResult,
    WebhookEvent,
)
from .providers import verify_webhook_signature

logger = logging.getLogger("purchases")


class PaymentProvider(Protocol):
    """External payment processor integration."""

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
        """Create a hosted checkout session."""

    def retrieve_checkout_session(self, session_id: str) -> PaymentSession:
        """Fetch the current state of a checkout session."""


class OrderLedger(Protocol):
    """Orders keyed by payment intent plus each identity's entitlement set."""

    def create_order(self, order: Order) -> bool:
        ...

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        ...

    def list_for_identity(self, identity_id: str) -> Sequence[OrderSummary]:
        ...

    def grant_item(self, identity_id: str, item_id: str) -> bool:
        ...

    def has_item(self, identity_id: str, item_id: str) -> bool:
        ...

    def rebuild_entitlements(self, identity_id: str) -> List[str]:
        ...


class CatalogLookup(Protocol):
    def get(self, item_id: str) -> Optional[CatalogItem]:
        ...


class PurchaseEventLogger(Protocol):
    """Captures structured purchase audit events."""

    def log(self, event: PurchaseAuditEvent) -> None:
        ...


class PurchaseService:
    """Coordinates the checkout state machine with the processor and the ledger."""

    def __init__(
        self,
        *,
        catalog: CatalogLookup,
        ledger: OrderLedger,
        provider: PaymentProvider,
        event_logger: PurchaseEventLogger,
        client_url: str,
        webhook_secret: Optional[str] = None,
        webhook_tolerance: int = 300,
        currency: str = "usd",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._provider = provider
        self._event_logger = event_logger
        self._client_url = client_url.rstrip("/")
        self._webhook_secret = webhook_secret
        self._webhook_tolerance = webhook_tolerance
        self._currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def create_checkout_session(self, identity: Identity, item_id: str) -> CheckoutSession:
        if not item_id:
            raise ValidationFailed("PDF ID is required")
        item = self._catalog.get(item_id)
        if item is None:
            raise NotFound("PDF not found")
        if self._is_entitled(identity.id, item_id):
            raise AlreadyOwned("You have already purchased this PDF")

        session = self._provider.create_checkout_session(
            amount_cents=item.price_cents,
            currency=self._currency,
            product_name=item.title,
            description=f"Language: {item.language}",
            image_url=item.cover_image_url or None,
            success_url=f"{self._client_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self._client_url}/checkout/cancel",
            customer_email=identity.email,
            client_reference_id=item.id,
            metadata={"userId": identity.id, "pdfId": item.id},
        )
        self._log_event(
            PurchaseAuditEventType.CHECKOUT_CREATED,
            identity_id=identity.id,
            item_id=item.id,
            reference=session.session_id,
            metadata={"amount_cents": str(item.price_cents)},
        )
        return session

    def verify_payment(self, identity: Identity, session_id: str) -> ReconciliationResult:
        """Reconcile a session the customer returned from; safe to call repeatedly."""

        if not session_id:
            raise ValidationFailed("Session ID is required")
        session = self._provider.retrieve_checkout_session(session_id)
        if not session.is_paid:
            raise PaymentIncomplete("Payment not completed")
        if session.identity_id != identity.id:
            logger.warning(
                "Identity %s attempted to verify session %s owned by %s",
                identity.id,
                session_id,
                session.identity_id,
            )
            raise Forbidden("Unauthorized")
        if not session.payment_intent_id or not session.item_id:
            raise PaymentIncomplete("Checkout session is missing payment details")
        return self._reconcile(session, source="client")

    def handle_webhook(self, raw_body: bytes, signature_header: Optional[str]) -> Optional[ReconciliationResult]:
        """Verify and apply a processor notification.

        Returns ``None`` for events that are acknowledged without action.
        """

        payload = verify_webhook_signature(
            raw_body,
            signature_header,
            self._webhook_secret,
            tolerance=self._webhook_tolerance,
            now=int(time.time()),
        )
        event = WebhookEvent.from_payload(payload)
        if event.event_type != CHECKOUT_COMPLETED_EVENT:
            self._log_event(
                PurchaseAuditEventType.WEBHOOK_IGNORED,
                reference=event.event_id,
                metadata={"event_type": event.event_type},
            )
            return None

        session = PaymentSession.from_processor(event.data_object)
        if not session.is_paid or not session.payment_intent_id or not session.identity_id or not session.item_id:
            self._log_event(
                PurchaseAuditEventType.WEBHOOK_IGNORED,
                identity_id=session.identity_id,
                item_id=session.item_id,
                reference=event.event_id,
                metadata={"event_type": event.event_type, "payment_status": session.payment_status},
            )
            return None
        return self._reconcile(session, source="webhook")

    def list_orders(self, identity: Identity) -> List[OrderSummary]:
        return list(self._ledger.list_for_identity(identity.id))

    def _reconcile(self, session: PaymentSession, *, source: str) -> ReconciliationResult:
        """Record the order for a paid session and grant its item exactly once."""

        payment_intent_id = session.payment_intent_id
        identity_id = session.identity_id
        item_id = session.item_id
        item = self._catalog.get(item_id)

        existing = self._ledger.get_by_payment_intent(payment_intent_id)
        if existing is not None:
            return self._already_processed(existing, item, source)

        if session.amount_total is not None:
            amount = from_minor_units(session.amount_total)
        elif item is not None:
            amount = item.price
        else:
            amount = from_minor_units(0)

        order = Order(
            id=uuid4().hex,
            identity_id=identity_id,
            item_id=item_id,
            payment_intent_id=payment_intent_id,
            amount=amount,
            status=OrderStatus.COMPLETED,
            created_at=self._clock(),
        )
        if not self._ledger.create_order(order):
            # Another delivery of the same payment inserted first.
            existing = self._ledger.get_by_payment_intent(payment_intent_id) or order
            return self._already_processed(existing, item, source)

        try:
            self._ledger.grant_item(identity_id, item_id)
        except Exception as exc:
            logger.exception("Entitlement grant failed for order %s", order.id)
            self._log_event(
                PurchaseAuditEventType.ENTITLEMENT_GRANT_FAILED,
                identity_id=identity_id,
                item_id=item_id,
                reference=payment_intent_id,
                metadata={"order_id": order.id, "error": type(exc).__name__},
            )
        else:
            self._log_event(
                PurchaseAuditEventType.PAYMENT_RECONCILED,
                identity_id=identity_id,
                item_id=item_id,
                reference=payment_intent_id,
                metadata={"order_id": order.id, "source": source, "amount": str(amount)},
            )
        return ReconciliationResult(order=order, item=item, already_processed=False)

    def _already_processed(self, order: Order, item: Optional[CatalogItem], source: str) -> ReconciliationResult:
        self._log_event(
            PurchaseAuditEventType.PAYMENT_ALREADY_PROCESSED,
            identity_id=order.identity_id,
            item_id=order.item_id,
            reference=order.payment_intent_id,
            metadata={"order_id": order.id, "source": source},
        )
        return ReconciliationResult(order=order, item=item, already_processed=True)

    def _is_entitled(self, identity_id: str, item_id: str) -> bool:
        if self._ledger.has_item(identity_id, item_id):
            return True
        return item_id in self._ledger.rebuild_entitlements(identity_id)

    def _log_event(
        self,
        event_type: PurchaseAuditEventType,
        *,
        identity_id: Optional[str] = None,
        item_id: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        self._event_logger.log(
            PurchaseAuditEvent(
                event_type=event_type,
                identity_id=identity_id,
                item_id=item_id,
                reference=reference,
                metadata=metadata or {},
            )
        )


__all__ = [
    "CatalogLookup",
    "OrderLedger",
    "PaymentProvider",
    "PurchaseEventLogger",
    "PurchaseService",
]
