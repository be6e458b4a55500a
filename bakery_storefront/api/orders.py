"""Order API - customer order history and the staff order console"""

from __future__ import annotations

import logging
from typing import Optional, Set

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..backend import BackendAPIError, BackendClient
from ..errors import OrderBusy, TransitionNotAllowed
from ..models import OrderDetail
from ..models.serialization import order_to_api_dict
from ..orders import Actor, OrderAction, OrderLifecycle, filter_orders, parse_order_number, status_counts
from ..orders.query import ALL
from ..session import StaticSessionProvider, user_email
from .deps import admin_in_flight, customer_in_flight, get_backend, get_session, require_admin, require_customer
from .schemas import (
    ConfirmRequest,
    OrderDetailResponse,
    OrderListResponse,
    TransitionResponse,
    action_infos,
    detail_response,
    item_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


async def _fetch_detail(backend: BackendClient, order_id: int) -> OrderDetail:
    try:
        detail = await backend.get_order(order_id)
    except BackendAPIError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return detail


def _owned(detail: OrderDetail, caller: StaticSessionProvider) -> OrderDetail:
    if detail.order.email.lower() != user_email(caller).lower():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return detail


async def _run_transition(
    lifecycle: OrderLifecycle,
    detail: OrderDetail,
    action: OrderAction,
    confirmed: bool,
) -> TransitionResponse:
    try:
        outcome = await lifecycle.transition(detail.order, action, confirmed=confirmed)
    except TransitionNotAllowed as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except OrderBusy as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    order = outcome.order
    return TransitionResponse(
        success=outcome.success,
        message=outcome.message,
        needsConfirmation=outcome.needs_confirmation,
        order=order_to_api_dict(order) if order else None,
        items=[item_dict(i) for i in outcome.items] if outcome.items is not None else None,
        actions=action_infos(order.order_status, lifecycle.actor) if order else [],
    )


# ==================== customer ====================


@router.get("/mine", response_model=OrderListResponse)
async def my_orders(
    status_filter: str = Query(ALL, alias="status"),
    caller: StaticSessionProvider = Depends(require_customer),
    backend: BackendClient = Depends(get_backend),
):
    try:
        orders = await backend.list_user_orders(user_email(caller))
    except BackendAPIError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    matched = filter_orders(orders, status_filter)
    return OrderListResponse(
        orders=[order_to_api_dict(o) for o in matched],
        total=len(matched),
        counts=status_counts(orders),
    )


@router.get("/search/{number}", response_model=OrderDetailResponse)
async def search_order(
    number: str,
    _caller: StaticSessionProvider = Depends(get_session),
    backend: BackendClient = Depends(get_backend),
):
    """Look an order up by its display number (``ORD000123``) or plain id."""
    order_id = parse_order_number(number)
    if order_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid order number")
    try:
        detail = await backend.search_order(order_id)
    except BackendAPIError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return detail_response(detail, Actor.CUSTOMER)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def my_order_detail(
    order_id: int,
    caller: StaticSessionProvider = Depends(require_customer),
    backend: BackendClient = Depends(get_backend),
):
    detail = _owned(await _fetch_detail(backend, order_id), caller)
    return detail_response(detail, Actor.CUSTOMER, order_id in customer_in_flight)


@router.post("/{order_id}/cancel", response_model=TransitionResponse)
async def cancel_my_order(
    order_id: int,
    payload: Optional[ConfirmRequest] = None,
    caller: StaticSessionProvider = Depends(require_customer),
    backend: BackendClient = Depends(get_backend),
):
    """Customer cancellation; allowed while the order is pending or confirmed."""
    detail = _owned(await _fetch_detail(backend, order_id), caller)
    lifecycle = OrderLifecycle(backend, Actor.CUSTOMER, in_flight=customer_in_flight)
    confirmed = payload.confirmed if payload else False
    return await _run_transition(lifecycle, detail, OrderAction.CANCEL, confirmed)


# ==================== staff ====================


def _in_flight() -> Set[int]:
    return admin_in_flight


@admin_router.get("", response_model=OrderListResponse)
async def list_orders(
    status_filter: str = Query(ALL, alias="status"),
    search: str = Query(""),
    _caller: StaticSessionProvider = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    """All orders, filtered by status and a free-text search, with per-status counts."""
    try:
        orders = await backend.list_orders()
    except BackendAPIError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    matched = filter_orders(orders, status_filter, search)
    return OrderListResponse(
        orders=[order_to_api_dict(o) for o in matched],
        total=len(matched),
        counts=status_counts(orders),
    )


@admin_router.get("/{order_id}", response_model=OrderDetailResponse)
async def order_detail(
    order_id: int,
    _caller: StaticSessionProvider = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
    in_flight: Set[int] = Depends(_in_flight),
):
    detail = await _fetch_detail(backend, order_id)
    return detail_response(detail, Actor.ADMIN, order_id in in_flight)


@admin_router.post("/{order_id}/actions/{action}", response_model=TransitionResponse)
async def apply_action(
    order_id: int,
    action: OrderAction,
    payload: Optional[ConfirmRequest] = None,
    _caller: StaticSessionProvider = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
    in_flight: Set[int] = Depends(_in_flight),
):
    """Drive one lifecycle transition; cancelling needs ``{"confirmed": true}``."""
    detail = await _fetch_detail(backend, order_id)
    lifecycle = OrderLifecycle(backend, Actor.ADMIN, in_flight=in_flight)
    confirmed = payload.confirmed if payload else False
    return await _run_transition(lifecycle, detail, action, confirmed)
