"""Checkout flow - slip selection and order submission."""

from __future__ import annotations

import logging
from typing import Optional

from ..backend import BackendAPIError, BackendClient
from ..config import Settings
from ..errors import CheckoutError
from ..models import (
    CardDetails,
    OrderSummary,
    PaymentMethod,
    PaymentStatus,
    ShippingInfo,
    SlipValidationResult,
    UploadedSlipImage,
)
from ..models.serialization import build_order_payload
from ..slip import SlipAuthenticator, prefilter
from .card import card_last4, format_card_number, format_cvc, format_expiry
from .promptpay import promptpay_qr_url
from .session import CheckoutSession, CheckoutSessionManager, CheckoutState

logger = logging.getLogger(__name__)

MSG_EMPTY_CART = "your cart is empty"
MSG_SHIPPING_INCOMPLETE = "please fill in all shipping details"
MSG_SLIP_MISSING = "please upload your transfer slip"
MSG_SLIP_VALIDATING = "the slip is still being checked"
MSG_SLIP_INVALID = "please upload a valid transfer slip"
MSG_CARD_INCOMPLETE = "please fill in all card details"
MSG_BUSY = "checkout is already being processed"
MSG_CLOSED = "this checkout is no longer open"


class CheckoutService:
    """Runs the checkout steps for one request against one backend client."""

    def __init__(
        self,
        backend: BackendClient,
        authenticator: SlipAuthenticator,
        manager: CheckoutSessionManager,
        settings: Optional[Settings] = None,
    ):
        self.backend = backend
        self.authenticator = authenticator
        self.manager = manager
        self.settings = settings or backend.settings

    async def start(self, owner_email: str, fullname: str = "") -> CheckoutSession:
        """Open a checkout from the current cart.

        Raises:
            CheckoutError: If the cart is empty
        """
        items = await self.backend.get_cart()
        if not items:
            raise CheckoutError(MSG_EMPTY_CART)
        summary = OrderSummary.from_cart(items)
        # one open checkout per customer
        for previous in self.manager.get_user_sessions(owner_email, active_only=True):
            if not previous.processing:
                self.manager.abandon(previous.session_id)
        removed = self.manager.cleanup_old_sessions()
        if removed:
            logger.info(f"[checkout] dropped {removed} stale sessions")
        session = self.manager.create_session(owner_email, summary)
        session.shipping.fullname = fullname
        session.qr_code_url = await promptpay_qr_url(self.backend, summary.total)
        logger.info(f"[checkout] session {session.session_id} opened, total={summary.total}")
        return session

    # ==================== form updates ====================

    def update_shipping(self, session: CheckoutSession, shipping: ShippingInfo) -> None:
        self._require_open(session)
        session.shipping = shipping
        session.touch()

    def set_payment(self, session: CheckoutSession, method: PaymentMethod, card: Optional[CardDetails] = None) -> None:
        self._require_open(session)
        session.payment_method = method
        if card is not None:
            session.card = CardDetails(
                card_number=format_card_number(card.card_number),
                expiry=format_expiry(card.expiry),
                cvc=format_cvc(card.cvc),
                name=card.name.strip(),
            )
        session.touch()

    # ==================== slip ====================

    async def select_slip(self, session: CheckoutSession, image: UploadedSlipImage) -> SlipValidationResult:
        """Select ``image`` as the slip and validate it.

        The verdict is applied only if no other file was selected (or the
        selection removed) while validation ran.
        """
        self._require_open(session)
        ticket = session.slip.select(image)
        session.touch()

        result = prefilter(image.content_type, image.size, self.settings)
        if result.valid:
            result = await self.authenticator.validate(image)

        if not session.slip.apply(ticket, result):
            logger.info(f"[checkout] stale slip verdict dropped for session {session.session_id}")
        return result

    def remove_slip(self, session: CheckoutSession) -> None:
        session.slip.remove()
        session.touch()

    # ==================== submission ====================

    def _require_open(self, session: CheckoutSession) -> None:
        if session.processing:
            raise CheckoutError(MSG_BUSY)
        if not session.is_active():
            raise CheckoutError(MSG_CLOSED)

    def check_ready(self, session: CheckoutSession) -> None:
        """Client-side gate; raises before any request is made.

        Raises:
            CheckoutError: With the first problem found
        """
        self._require_open(session)
        if not session.summary.items:
            raise CheckoutError(MSG_EMPTY_CART)
        if not session.shipping.is_complete():
            raise CheckoutError(MSG_SHIPPING_INCOMPLETE)
        if session.payment_method == PaymentMethod.QR_PROMPTPAY:
            if session.slip.image is None:
                raise CheckoutError(MSG_SLIP_MISSING)
            if session.slip.validating:
                raise CheckoutError(MSG_SLIP_VALIDATING)
            if not session.slip.valid:
                raise CheckoutError(MSG_SLIP_INVALID)
        elif not session.card.is_complete():
            raise CheckoutError(MSG_CARD_INCOMPLETE)

    async def submit(self, session: CheckoutSession) -> int:
        """Pay and create the order.

        QR PromptPay uploads the validated slip and creates the order with
        ``paymentStatus=pending``; card charges first and creates it ``paid``.

        Returns:
            The new order id

        Raises:
            CheckoutError: If the checkout is not ready or the backend refused a step
        """
        self.check_ready(session)
        session.update_state(CheckoutState.PROCESSING)
        session.error = None
        try:
            order_id = await self._submit(session)
        except CheckoutError as exc:
            session.error = str(exc)
            session.update_state(CheckoutState.OPEN)
            raise
        except BackendAPIError as exc:
            session.error = exc.message
            session.update_state(CheckoutState.OPEN)
            raise CheckoutError(exc.message) from exc

        session.order_id = order_id
        session.slip.remove()
        session.update_state(CheckoutState.COMPLETED)
        return order_id

    async def _submit(self, session: CheckoutSession) -> int:
        method = session.payment_method
        slip_path: Optional[str] = None
        payment_id: Optional[str] = None
        last4: Optional[str] = None

        if method == PaymentMethod.QR_PROMPTPAY:
            upload = await self.backend.upload_slip(session.slip.image)
            if not upload.success or not upload.data.get("path"):
                raise CheckoutError(upload.message or "slip upload failed")
            slip_path = str(upload.data["path"])
            payment_status = PaymentStatus.PENDING
        else:
            charge = await self.backend.charge_card(session.summary.total, session.card)
            if not charge.success:
                raise CheckoutError(charge.message or "payment failed")
            payment_id = charge.data.get("paymentId")
            last4 = charge.data.get("cardLast4") or card_last4(session.card.card_number)
            payment_status = PaymentStatus.PAID

        payload = build_order_payload(
            email=session.owner_email,
            summary=session.summary,
            shipping=session.shipping,
            payment_method=method,
            payment_status=payment_status,
            slip_image=slip_path,
            payment_id=payment_id,
            card=session.card,
            card_last4=last4,
        )
        created = await self.backend.create_order(payload)
        if not created.success or created.data.get("orderId") is None:
            raise CheckoutError(created.message or "cannot create order")
        order_id = int(created.data["orderId"])
        logger.info(f"[checkout] order {order_id} created via {method.value} ({payment_status.value})")

        try:
            cleared = await self.backend.clear_cart()
            if not cleared.success:
                logger.warning(f"[checkout] cart not cleared after order {order_id}: {cleared.message}")
        except BackendAPIError as exc:
            logger.warning(f"[checkout] cart not cleared after order {order_id}: {exc.message}")

        return order_id


__all__ = ["CheckoutService"]
