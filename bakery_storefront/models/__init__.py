"""Data models for the storefront core

Layout:
- base.py: status enums shared with the backend
- order.py: orders, items, cart and checkout snapshots
- slip.py: uploaded slip and its validation result
- serialization.py: backend payload builders
"""

from .base import OrderStatus, PaymentMethod, PaymentStatus
from .order import (
    CardDetails,
    CartItem,
    Order,
    OrderDetail,
    OrderItem,
    OrderSummary,
    ShippingInfo,
)
from .slip import SlipValidationResult, UploadedSlipImage

__all__ = [
    # enums
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    # orders
    "Order",
    "OrderItem",
    "OrderDetail",
    "CartItem",
    "OrderSummary",
    "ShippingInfo",
    "CardDetails",
    # slips
    "UploadedSlipImage",
    "SlipValidationResult",
]
