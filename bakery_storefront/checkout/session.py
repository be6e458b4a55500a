"""Checkout sessions - per-customer checkout state between requests"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..models import CardDetails, OrderSummary, PaymentMethod, ShippingInfo
from ..slip import SlipSelection


class CheckoutState(str, Enum):
    """Checkout session state"""
    OPEN = "open"  # collecting shipping/payment data
    PROCESSING = "processing"  # submission in progress
    COMPLETED = "completed"  # order created
    ABANDONED = "abandoned"


@dataclass
class CheckoutSession:
    """Checkout page state for one customer

    Holds the cart snapshot, shipping form, payment choice and the slip
    selection until the order is submitted.
    """

    session_id: str = field(default_factory=lambda: str(uuid4()))
    owner_email: str = ""
    state: CheckoutState = CheckoutState.OPEN
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    summary: OrderSummary = field(default_factory=OrderSummary)
    shipping: ShippingInfo = field(default_factory=ShippingInfo)
    payment_method: PaymentMethod = PaymentMethod.QR_PROMPTPAY
    card: CardDetails = field(default_factory=CardDetails)
    slip: SlipSelection = field(default_factory=SlipSelection)
    qr_code_url: Optional[str] = None

    order_id: Optional[int] = None
    error: Optional[str] = None

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def update_state(self, new_state: CheckoutState) -> None:
        self.state = new_state
        self.touch()

    @property
    def processing(self) -> bool:
        return self.state == CheckoutState.PROCESSING

    def is_active(self) -> bool:
        return self.state in [CheckoutState.OPEN, CheckoutState.PROCESSING]

    def can_submit(self) -> bool:
        """Whether the confirm-payment action should be enabled."""
        if not self.is_active() or self.processing or not self.shipping.is_complete():
            return False
        if self.payment_method == PaymentMethod.QR_PROMPTPAY:
            return self.slip.valid
        return self.card.is_complete()

    def get_summary(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "state": self.state.value,
            "paymentMethod": self.payment_method.value,
            "subtotal": self.summary.subtotal,
            "shipping": self.summary.shipping,
            "total": self.summary.total,
            "itemCount": sum(item.quantity for item in self.summary.items),
            "qrCodeUrl": self.qr_code_url,
            "slipSelected": self.slip.image is not None,
            "slipValidating": self.slip.validating,
            "slipValid": self.slip.valid,
            "slipReason": self.slip.reason,
            "canSubmit": self.can_submit(),
            "orderId": self.order_id,
            "error": self.error,
        }


class CheckoutSessionManager:
    """In-memory registry of checkout sessions"""

    def __init__(self):
        self.sessions: Dict[str, CheckoutSession] = {}

    def create_session(self, owner_email: str, summary: OrderSummary) -> CheckoutSession:
        session = CheckoutSession(owner_email=owner_email, summary=summary)
        self.sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str, owner_email: Optional[str] = None) -> Optional[CheckoutSession]:
        """Look up a session; with ``owner_email`` it must also belong to that customer."""
        session = self.sessions.get(session_id)
        if session is None:
            return None
        if owner_email is not None and session.owner_email != owner_email:
            return None
        return session

    def get_user_sessions(self, owner_email: str, active_only: bool = False) -> List[CheckoutSession]:
        sessions = [s for s in self.sessions.values() if s.owner_email == owner_email]
        if active_only:
            sessions = [s for s in sessions if s.is_active()]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    def abandon(self, session_id: str) -> bool:
        """Close a session and release its slip."""
        session = self.sessions.get(session_id)
        if session is None:
            return False
        session.slip.remove()
        session.update_state(CheckoutState.ABANDONED)
        return True

    def cleanup_old_sessions(self, max_age_hours: int = 24) -> int:
        cutoff_time = datetime.now() - timedelta(hours=max_age_hours)
        old_sessions = [
            sid for sid, session in self.sessions.items()
            if session.updated_at < cutoff_time and not session.processing
        ]
        for sid in old_sessions:
            self.sessions[sid].slip.remove()
            del self.sessions[sid]
        return len(old_sessions)


__all__ = ["CheckoutSession", "CheckoutSessionManager", "CheckoutState"]
