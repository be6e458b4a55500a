"""Request/response bodies for the storefront API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, constr

from ..models import OrderDetail, OrderItem
from ..models.serialization import order_to_api_dict
from ..orders import Actor, available_transitions


class ShippingRequest(BaseModel):
    fullname: constr(strip_whitespace=True) = ""
    phone: constr(strip_whitespace=True) = ""
    address: constr(strip_whitespace=True) = ""
    note: str = ""


class CardRequest(BaseModel):
    cardNumber: str = ""
    expiry: str = ""
    cvc: str = ""
    name: str = ""


class PaymentRequest(BaseModel):
    paymentMethod: str
    card: Optional[CardRequest] = None


class ConfirmRequest(BaseModel):
    """Operator acknowledgement for irreversible actions"""
    confirmed: bool = False


class CheckoutResponse(BaseModel):
    success: bool
    session: Optional[dict] = None
    error: Optional[str] = None


class SlipResponse(BaseModel):
    success: bool
    valid: bool
    reason: Optional[str] = None
    session: Optional[dict] = None


class SubmitResponse(BaseModel):
    success: bool
    orderId: Optional[int] = None
    error: Optional[str] = None


class ActionInfo(BaseModel):
    action: str
    label: str
    orderStatus: str
    paymentStatus: Optional[str] = None


class OrderDetailResponse(BaseModel):
    success: bool
    order: dict
    items: List[dict]
    actions: List[ActionInfo] = []
    updating: bool = False


class OrderListResponse(BaseModel):
    orders: List[dict]
    total: int
    counts: Dict[str, int] = {}


class TransitionResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    needsConfirmation: bool = False
    order: Optional[dict] = None
    items: Optional[List[dict]] = None
    actions: List[ActionInfo] = []


def item_dict(item: OrderItem) -> Dict[str, Any]:
    return {"id": item.id, **item.to_api_dict()}


def action_infos(detail_status, actor: Actor, updating: bool = False) -> List[ActionInfo]:
    if updating:
        return []
    return [
        ActionInfo(
            action=t.action.value,
            label=t.label,
            orderStatus=t.order_status.value,
            paymentStatus=t.payment_status.value if t.payment_status else None,
        )
        for t in available_transitions(detail_status, actor)
    ]


def detail_response(detail: OrderDetail, actor: Actor, updating: bool = False) -> OrderDetailResponse:
    return OrderDetailResponse(
        success=True,
        order=order_to_api_dict(detail.order),
        items=[item_dict(item) for item in detail.items],
        actions=action_infos(detail.order.order_status, actor, updating),
        updating=updating,
    )
