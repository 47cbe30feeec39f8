"""Entitlement ledger."""

from .models import Order, OrderStatus, OrderSummary

__all__ = ["Order", "OrderStatus", "OrderSummary"]
