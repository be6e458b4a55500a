"""Checkout API - open a checkout, attach a slip, pay and create the order"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..backend import BackendAPIError, BackendClient
from ..checkout import CheckoutService, CheckoutSession, CheckoutSessionManager
from ..errors import CheckoutError
from ..models import CardDetails, PaymentMethod, ShippingInfo, UploadedSlipImage
from ..session import StaticSessionProvider, user_email
from ..slip import SlipAuthenticator
from .deps import get_authenticator, get_backend, get_checkout_manager, require_customer
from .schemas import CheckoutResponse, PaymentRequest, ShippingRequest, SlipResponse, SubmitResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout")


def _service(
    backend: BackendClient = Depends(get_backend),
    authenticator: SlipAuthenticator = Depends(get_authenticator),
    manager: CheckoutSessionManager = Depends(get_checkout_manager),
) -> CheckoutService:
    return CheckoutService(backend, authenticator, manager)


def _load(manager: CheckoutSessionManager, session_id: str, caller: StaticSessionProvider) -> CheckoutSession:
    checkout = manager.get_session(session_id, owner_email=user_email(caller))
    if checkout is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Checkout session not found")
    return checkout


async def read_slip(file: UploadFile, max_bytes: int) -> UploadedSlipImage:
    """Read an uploaded slip, keeping at most ``max_bytes + 1`` bytes.

    An oversized upload comes back one byte over the limit, so the size
    check rejects it without the whole body being held in memory.
    """
    try:
        content = await file.read(max_bytes + 1)
    finally:
        await file.close()
    return UploadedSlipImage(
        content=content,
        content_type=file.content_type or "",
        filename=file.filename or "slip",
    )


@router.post("/sessions", response_model=CheckoutResponse)
async def start_checkout(
    caller: StaticSessionProvider = Depends(require_customer),
    service: CheckoutService = Depends(_service),
):
    """Open a checkout session from the caller's cart."""
    user = caller.get_current_user() or {}
    try:
        checkout = await service.start(user_email(caller), fullname=user.get("fullname", ""))
    except CheckoutError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except BackendAPIError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return CheckoutResponse(success=True, session=checkout.get_summary())


@router.get("/sessions/{session_id}", response_model=CheckoutResponse)
async def get_checkout(
    session_id: str,
    caller: StaticSessionProvider = Depends(require_customer),
    manager: CheckoutSessionManager = Depends(get_checkout_manager),
):
    checkout = _load(manager, session_id, caller)
    return CheckoutResponse(success=True, session=checkout.get_summary())


@router.put("/sessions/{session_id}/shipping", response_model=CheckoutResponse)
async def update_shipping(
    session_id: str,
    payload: ShippingRequest,
    caller: StaticSessionProvider = Depends(require_customer),
    service: CheckoutService = Depends(_service),
):
    checkout = _load(service.manager, session_id, caller)
    try:
        service.update_shipping(checkout, ShippingInfo(**payload.model_dump()))
    except CheckoutError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return CheckoutResponse(success=True, session=checkout.get_summary())


@router.put("/sessions/{session_id}/payment", response_model=CheckoutResponse)
async def update_payment(
    session_id: str,
    payload: PaymentRequest,
    caller: StaticSessionProvider = Depends(require_customer),
    service: CheckoutService = Depends(_service),
):
    checkout = _load(service.manager, session_id, caller)
    try:
        method = PaymentMethod(payload.paymentMethod)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown payment method")

    card = None
    if payload.card is not None:
        card = CardDetails(
            card_number=payload.card.cardNumber,
            expiry=payload.card.expiry,
            cvc=payload.card.cvc,
            name=payload.card.name,
        )
    try:
        service.set_payment(checkout, method, card)
    except CheckoutError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return CheckoutResponse(success=True, session=checkout.get_summary())


@router.post("/sessions/{session_id}/slip", response_model=SlipResponse)
async def select_slip(
    session_id: str,
    file: UploadFile = File(...),
    caller: StaticSessionProvider = Depends(require_customer),
    service: CheckoutService = Depends(_service),
):
    """Attach a transfer slip and run the authenticity checks on it."""
    checkout = _load(service.manager, session_id, caller)
    image = await read_slip(file, service.settings.max_slip_bytes)
    logger.info(f"[checkout] slip for {session_id}: {image.filename}, {image.size} bytes, {image.content_type}")
    try:
        result = await service.select_slip(checkout, image)
    except CheckoutError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return SlipResponse(
        success=result.valid,
        valid=result.valid,
        reason=result.reason,
        session=checkout.get_summary(),
    )


@router.delete("/sessions/{session_id}/slip", response_model=CheckoutResponse)
async def remove_slip(
    session_id: str,
    caller: StaticSessionProvider = Depends(require_customer),
    service: CheckoutService = Depends(_service),
):
    checkout = _load(service.manager, session_id, caller)
    service.remove_slip(checkout)
    return CheckoutResponse(success=True, session=checkout.get_summary())


@router.post("/sessions/{session_id}/submit", response_model=SubmitResponse)
async def submit_checkout(
    session_id: str,
    caller: StaticSessionProvider = Depends(require_customer),
    service: CheckoutService = Depends(_service),
):
    """Pay and create the order; the order-creation request is never retried."""
    checkout = _load(service.manager, session_id, caller)
    try:
        order_id = await service.submit(checkout)
    except CheckoutError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return SubmitResponse(success=True, orderId=order_id)


@router.delete("/sessions/{session_id}", response_model=CheckoutResponse)
async def abandon_checkout(
    session_id: str,
    caller: StaticSessionProvider = Depends(require_customer),
    manager: CheckoutSessionManager = Depends(get_checkout_manager),
):
    checkout = _load(manager, session_id, caller)
    manager.abandon(checkout.session_id)
    return CheckoutResponse(success=True, session=checkout.get_summary())
