"""Purchase flow controller and payment processor adapters."""

from .models import (
    CHECKOUT_COMPLETED_EVENT,
    CheckoutSession,
    PaymentSession,
    PurchaseAuditEvent,
    PurchaseAuditEventType,
    ReconciliationResult,
    WebhookEvent,
)
from .providers import (
    LocalSandboxPaymentProvider,
    StripePaymentProvider,
    sign_webhook_payload,
    verify_webhook_signature,
)
from .service import (
    CatalogLookup,
    OrderLedger,
    PaymentProvider,
    PurchaseEventLogger,
    PurchaseService,
)

__all__ = [
    "CHECKOUT_COMPLETED_EVENT",
    "CatalogLookup",
    "CheckoutSession",
    "LocalSandboxPaymentProvider",
    "OrderLedger",
    "PaymentProvider",
    "PaymentSession",
    "PurchaseAuditEvent",
    "PurchaseAuditEventType",
    "PurchaseEventLogger",
    "PurchaseService",
    "ReconciliationResult",
    "StripePaymentProvider",
    "WebhookEvent",
    "sign_webhook_payload",
    "verify_webhook_signature",
]
