from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import pytest

from vocabulary_center.app.catalog import CatalogItem, CatalogService
from vocabulary_center.app.downloads import DownloadGate
from vocabulary_center.app.identity import AuthService, Identity, SessionTokenCodec
from vocabulary_center.app.identity.service import IdentityRepository, ResetNotifier
from vocabulary_center.app.orders import Order, OrderStatus, OrderSummary
from vocabulary_center.app.purchases import (
    LocalSandboxPaymentProvider,
    PurchaseAuditEvent,
    PurchaseService,
)
from vocabulary_center.app.purchases.service import OrderLedger, PurchaseEventLogger
from vocabulary_center.errors import Conflict, NotFound

WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "test-secret"


class InMemoryIdentityRepository(IdentityRepository):
    def __init__(self) -> None:
        self.records: Dict[str, Identity] = {}

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        return self.records.get(identity_id)

    def get_by_email(self, email: str) -> Optional[Identity]:
        return next((i for i in self.records.values() if i.email == email.strip().lower()), None)

    def get_by_google_id(self, google_id: str) -> Optional[Identity]:
        return next((i for i in self.records.values() if i.google_id == google_id), None)

    def create(self, identity: Identity) -> Identity:
        if self.get_by_email(identity.email) is not None:
            raise Conflict("User already exists with this email")
        if identity.google_id and self.get_by_google_id(identity.google_id) is not None:
            raise Conflict("External account is already linked to another user")
        self.records[identity.id] = identity
        return identity

    def link_google_id(self, identity_id: str, google_id: str) -> Identity:
        identity = self.records.get(identity_id)
        if identity is None:
            raise NotFound("User not found")
        updated = identity.model_copy(update={"google_id": google_id})
        self.records[identity_id] = updated
        return updated

    def set_reset_token(self, identity_id: str, token_hash: str, expires_at: datetime) -> None:
        self.records[identity_id] = self.records[identity_id].model_copy(
            update={"reset_password_token": token_hash, "reset_password_expires": expires_at}
        )

    def clear_reset_token(self, identity_id: str) -> None:
        self.records[identity_id] = self.records[identity_id].model_copy(
            update={"reset_password_token": None, "reset_password_expires": None}
        )

    def consume_reset_token(self, token_hash: str, password_hash: str, *, now: datetime) -> Optional[Identity]:
        for identity in self.records.values():
            if (
                identity.reset_password_token == token_hash
                and identity.reset_password_expires is not None
                and identity.reset_password_expires > now
            ):
                updated = identity.model_copy(
                    update={
                        "password_hash": password_hash,
                        "reset_password_token": None,
                        "reset_password_expires": None,
                    }
                )
                self.records[identity.id] = updated
                return updated
        return None


class InMemoryCatalogRepository:
    def __init__(self) -> None:
        self.items: Dict[str, CatalogItem] = {}

    def get(self, item_id: str) -> Optional[CatalogItem]:
        return self.items.get(item_id)

    def list(self, *, language: Optional[str] = None) -> Sequence[CatalogItem]:
        items = [item for item in self.items.values() if language is None or item.language == language]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    def list_languages(self) -> Sequence[str]:
        return [item.language for item in self.items.values()]

    def save(self, item: CatalogItem) -> CatalogItem:
        self.items[item.id] = item
        return item

    def delete(self, item_id: str) -> bool:
        return self.items.pop(item_id, None) is not None


class InMemoryOrderLedger(OrderLedger):
    def __init__(self, identities: InMemoryIdentityRepository, catalog: InMemoryCatalogRepository) -> None:
        self.identities = identities
        self.catalog = catalog
        self.orders: Dict[str, Order] = {}
        self.fail_grants = False

    def create_order(self, order: Order) -> bool:
        if order.payment_intent_id in self.orders:
            return False
        self.orders[order.payment_intent_id] = order
        return True

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        return self.orders.get(payment_intent_id)

    def list_for_identity(self, identity_id: str) -> Sequence[OrderSummary]:
        summaries = []
        for order in sorted(self.orders.values(), key=lambda o: o.created_at, reverse=True):
            if order.identity_id != identity_id:
                continue
            item = self.catalog.get(order.item_id)
            summaries.append(
                OrderSummary(
                    order=order,
                    item_title=item.title if item else None,
                    item_language=item.language if item else None,
                    item_price=item.price if item else None,
                    item_cover_image_url=item.cover_image_url if item else None,
                )
            )
        return summaries

    def grant_item(self, identity_id: str, item_id: str) -> bool:
        if self.fail_grants:
            raise RuntimeError("entitlement store unavailable")
        identity = self.identities.records[identity_id]
        if item_id in identity.purchased_items:
            return False
        self.identities.records[identity_id] = identity.model_copy(
            update={"purchased_items": identity.purchased_items + (item_id,)}
        )
        return True

    def has_item(self, identity_id: str, item_id: str) -> bool:
        identity = self.identities.records.get(identity_id)
        return identity is not None and item_id in identity.purchased_items

    def rebuild_entitlements(self, identity_id: str) -> List[str]:
        identity = self.identities.records[identity_id]
        paid = {
            order.item_id
            for order in self.orders.values()
            if order.identity_id == identity_id and order.status == OrderStatus.COMPLETED
        }
        missing = sorted(paid - set(identity.purchased_items))
        if missing:
            self.identities.records[identity_id] = identity.model_copy(
                update={"purchased_items": identity.purchased_items + tuple(missing)}
            )
        return missing


class RecordingNotifier(ResetNotifier):
    def __init__(self) -> None:
        self.sent: List[tuple[str, str]] = []
        self.error: Optional[Exception] = None

    def send_password_reset(self, email: str, reset_token: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((email, reset_token))


class RecordingEventLogger(PurchaseEventLogger):
    def __init__(self) -> None:
        self.events: List[PurchaseAuditEvent] = []

    def log(self, event: PurchaseAuditEvent) -> None:
        self.events.append(event)


class MutableClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def identities() -> InMemoryIdentityRepository:
    return InMemoryIdentityRepository()


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def ledger(identities, catalog_repository) -> InMemoryOrderLedger:
    return InMemoryOrderLedger(identities, catalog_repository)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def events() -> RecordingEventLogger:
    return RecordingEventLogger()


@pytest.fixture
def sandbox() -> LocalSandboxPaymentProvider:
    return LocalSandboxPaymentProvider()


@pytest.fixture
def session_codec() -> SessionTokenCodec:
    return SessionTokenCodec(JWT_SECRET)


@pytest.fixture
def auth_service(identities, session_codec, notifier) -> AuthService:
    return AuthService(identities, session_codec, notifier, bcrypt_rounds=4)


@pytest.fixture
def catalog_service(catalog_repository) -> CatalogService:
    return CatalogService(catalog_repository)


@pytest.fixture
def purchase_service(catalog_repository, ledger, sandbox, events) -> PurchaseService:
    return PurchaseService(
        catalog=catalog_repository,
        ledger=ledger,
        provider=sandbox,
        event_logger=events,
        client_url="http://localhost:3000",
        webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def download_gate(catalog_repository, ledger) -> DownloadGate:
    return DownloadGate(catalog_repository, ledger)


@pytest.fixture
def spanish_guide(catalog_repository) -> CatalogItem:
    return catalog_repository.save(
        CatalogItem(
            id="pdf-spanish",
            title="Spanish Vocabulary Essentials",
            language="Spanish",
            price=Decimal("9.99"),
            description="1000+ essential words and phrases.",
            cover_image_url="https://cdn.example.com/covers/spanish.jpg",
            pdf_file_url="https://cdn.example.com/raw/spanish.pdf",
        )
    )


@pytest.fixture
def alice(auth_service) -> Identity:
    return auth_service.register("Alice", "alice@example.com", "wonderland").identity


@pytest.fixture
def bob(auth_service) -> Identity:
    return auth_service.register("Bob", "bob@example.com", "builder1").identity
