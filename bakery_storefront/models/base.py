"""Base enums - status vocabularies shared with the bakery backend"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    """Fulfilment progress of an order"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"  # terminal success
    CANCELLED = "cancelled"  # terminal failure


class PaymentStatus(str, Enum):
    """Money-received confirmation"""
    PENDING = "pending"  # slip awaiting review
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """Checkout payment rails"""
    QR_PROMPTPAY = "qr_promptpay"
    CARD = "card"


__all__ = [
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
]
