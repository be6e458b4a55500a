"""Serialization helpers - backend payload builders"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .base import PaymentMethod, PaymentStatus
from .order import CardDetails, Order, OrderSummary, ShippingInfo


def order_to_api_dict(order: Order) -> Dict[str, Any]:
    """Render an order back into the backend's camelCase shape."""
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "email": order.email,
        "subtotal": order.subtotal,
        "shipping": order.shipping,
        "total": order.total,
        "paymentMethod": order.payment_method.value,
        "paymentStatus": order.payment_status.value,
        "orderStatus": order.order_status.value,
        "receiverName": order.receiver_name,
        "receiverPhone": order.receiver_phone,
        "receiverAddress": order.receiver_address,
        "note": order.note,
        "slipImage": order.slip_image,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
    }


def build_order_payload(
    *,
    email: str,
    summary: OrderSummary,
    shipping: ShippingInfo,
    payment_method: PaymentMethod,
    payment_status: PaymentStatus,
    slip_image: Optional[str] = None,
    payment_id: Optional[str] = None,
    card: Optional[CardDetails] = None,
    card_last4: Optional[str] = None,
) -> Dict[str, Any]:
    """Body for ``POST /api/orders``.

    Item prices are snapshots of the cart, so the item sum equals the
    subtotal sent alongside it.
    """
    is_card = payment_method == PaymentMethod.CARD
    return {
        "email": email,
        "items": [item.to_order_item().to_api_dict() for item in summary.items],
        "subtotal": summary.subtotal,
        "shipping": summary.shipping,
        "total": summary.total,
        "paymentMethod": payment_method.value,
        "paymentStatus": payment_status.value,
        "paymentId": payment_id,
        "slipImage": slip_image,
        "shippingInfo": shipping.to_api_dict(),
        "cardName": card.name if is_card and card else None,
        "cardLast4": card_last4,
    }


__all__ = [
    "build_order_payload",
    "order_to_api_dict",
]
