"""Order model - orders, their items and the checkout-side snapshots"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import OrderStatus, PaymentMethod, PaymentStatus


def _money(value: Any) -> float:
    """Coerce a backend amount (number or numeric string) to float."""
    if value is None or value == "":
        return 0.0
    return float(value)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class OrderItem:
    """Order line; name and price are snapshots taken at order time"""
    product_id: int = 0
    product_name: str = ""
    price: float = 0.0
    quantity: int = 1
    id: Optional[int] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            id=data.get("id"),
            product_id=int(data.get("productId") or 0),
            product_name=data.get("productName") or "",
            price=_money(data.get("price")),
            quantity=int(data.get("quantity") or 0),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "price": self.price,
            "quantity": self.quantity,
        }


@dataclass
class Order:
    """Order as stored by the backend

    ``total == subtotal + shipping`` always holds for orders created here.
    """

    id: int
    email: str = ""
    subtotal: float = 0.0
    shipping: float = 0.0
    total: float = 0.0
    payment_method: PaymentMethod = PaymentMethod.QR_PROMPTPAY
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.PENDING
    receiver_name: str = ""
    receiver_phone: str = ""
    receiver_address: str = ""
    note: Optional[str] = None
    slip_image: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def order_number(self) -> str:
        """Display number used by the order search page, e.g. ``ORD000042``."""
        return f"ORD{self.id:06d}"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Order":
        """Build an order from the backend's camelCase JSON.

        Raises:
            ValueError: If a status field holds a value outside the known vocabulary
        """
        return cls(
            id=int(data["id"]),
            email=data.get("email") or "",
            subtotal=_money(data.get("subtotal")),
            shipping=_money(data.get("shipping")),
            total=_money(data.get("total")),
            payment_method=PaymentMethod(data.get("paymentMethod") or PaymentMethod.QR_PROMPTPAY.value),
            payment_status=PaymentStatus(data.get("paymentStatus") or PaymentStatus.PENDING.value),
            order_status=OrderStatus(data.get("orderStatus") or OrderStatus.PENDING.value),
            receiver_name=data.get("receiverName") or "",
            receiver_phone=data.get("receiverPhone") or "",
            receiver_address=data.get("receiverAddress") or "",
            note=data.get("note") or None,
            slip_image=data.get("slipImage") or None,
            created_at=_parse_timestamp(data.get("createdAt")),
        )


@dataclass
class OrderDetail:
    """An order together with the items it owns"""
    order: Order
    items: List[OrderItem] = field(default_factory=list)

    def items_subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OrderDetail":
        return cls(
            order=Order.from_api(data["order"]),
            items=[OrderItem.from_api(item) for item in data.get("items") or []],
        )


@dataclass
class CartItem:
    """Cart line as returned by ``GET /api/cart``"""
    product_id: int
    product_name: str
    price: float
    quantity: int

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CartItem":
        return cls(
            product_id=int(data.get("productId") or 0),
            product_name=data.get("productName") or "",
            price=_money(data.get("price")),
            quantity=int(data.get("quantity") or 0),
        )

    def to_order_item(self) -> OrderItem:
        return OrderItem(
            product_id=self.product_id,
            product_name=self.product_name,
            price=self.price,
            quantity=self.quantity,
        )


@dataclass
class OrderSummary:
    """Totals shown on the checkout page"""
    items: List[CartItem] = field(default_factory=list)
    subtotal: float = 0.0
    shipping: float = 0.0
    total: float = 0.0

    @classmethod
    def from_cart(cls, items: List[CartItem], shipping: float = 0.0) -> "OrderSummary":
        subtotal = round(sum(item.price * item.quantity for item in items), 2)
        return cls(items=list(items), subtotal=subtotal, shipping=shipping, total=round(subtotal + shipping, 2))


@dataclass
class ShippingInfo:
    """Receiver details captured at checkout"""
    fullname: str = ""
    phone: str = ""
    address: str = ""
    note: str = ""

    def is_complete(self) -> bool:
        return bool(self.fullname.strip() and self.phone.strip() and self.address.strip())

    def to_api_dict(self) -> Dict[str, str]:
        return {
            "fullname": self.fullname,
            "phone": self.phone,
            "address": self.address,
            "note": self.note,
        }


@dataclass
class CardDetails:
    """Card fields for the mock card charge"""
    card_number: str = ""
    expiry: str = ""  # MM/YY
    cvc: str = ""
    name: str = ""

    def is_complete(self) -> bool:
        return bool(self.card_number and self.expiry and self.cvc and self.name)

    @property
    def digits(self) -> str:
        return self.card_number.replace(" ", "")


__all__ = [
    "CardDetails",
    "CartItem",
    "Order",
    "OrderDetail",
    "OrderItem",
    "OrderSummary",
    "ShippingInfo",
]
