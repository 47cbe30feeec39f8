"""Application wiring for purchases, the entitlement ledger and downloads."""
from __future__ import annotations

import logging
from functools import lru_cache

from ...config import get_app_config
from ...db import get_connection_factory
from ..downloads import AssetStreamer, DownloadGate
from ..orders.repository import PostgresOrderLedger
from ..purchases import (
    LocalSandboxPaymentProvider,
    PaymentProvider,
    PurchaseAuditEvent,
    PurchaseEventLogger,
    PurchaseService,
    StripePaymentProvider,
)
from .catalog import get_catalog_repository

logger = logging.getLogger("purchases")


class LoggingPurchaseEventLogger(PurchaseEventLogger):
    """Forwards purchase audit events to the application logger."""

    def log(self, event: PurchaseAuditEvent) -> None:
        logger.info(
            "Purchase event %s identity=%s item=%s reference=%s metadata=%s",
            event.event_type.value,
            event.identity_id,
            event.item_id,
            event.reference,
            event.metadata,
        )


@lru_cache(maxsize=1)
def get_order_ledger() -> PostgresOrderLedger:
    return PostgresOrderLedger(get_connection_factory())


@lru_cache(maxsize=1)
def get_payment_provider() -> PaymentProvider:
    config = get_app_config()
    if config.stripe_secret_key:
        return StripePaymentProvider(
            config.stripe_secret_key,
            api_base=config.stripe_api_base,
            timeout=config.http_timeout_seconds,
        )
    if config.is_production:
        raise RuntimeError("STRIPE_SECRET_KEY must be set in production")
    logger.warning("STRIPE_SECRET_KEY is not set; using the local sandbox payment provider")
    return LocalSandboxPaymentProvider()


@lru_cache(maxsize=1)
def get_purchase_service() -> PurchaseService:
    config = get_app_config()
    return PurchaseService(
        catalog=get_catalog_repository(),
        ledger=get_order_ledger(),
        provider=get_payment_provider(),
        event_logger=LoggingPurchaseEventLogger(),
        client_url=config.client_url,
        webhook_secret=config.stripe_webhook_secret,
        webhook_tolerance=config.webhook_tolerance_seconds,
    )


@lru_cache(maxsize=1)
def get_download_gate() -> DownloadGate:
    return DownloadGate(get_catalog_repository(), get_order_ledger())


@lru_cache(maxsize=1)
def get_asset_streamer() -> AssetStreamer:
    return AssetStreamer(timeout=get_app_config().http_timeout_seconds)


__all__ = [
    "LoggingPurchaseEventLogger",
    "get_asset_streamer",
    "get_download_gate",
    "get_order_ledger",
    "get_payment_provider",
    "get_purchase_service",
]
