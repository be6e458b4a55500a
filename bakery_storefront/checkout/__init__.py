"""Checkout: cart snapshot, slip selection, payment and order creation."""

from __future__ import annotations

from .card import card_last4, format_card_number, format_cvc, format_expiry
from .promptpay import fallback_qr_url, promptpay_qr_url
from .service import CheckoutService
from .session import CheckoutSession, CheckoutSessionManager, CheckoutState

__all__ = [
    "CheckoutService",
    "CheckoutSession",
    "CheckoutSessionManager",
    "CheckoutState",
    "card_last4",
    "fallback_qr_url",
    "format_card_number",
    "format_cvc",
    "format_expiry",
    "promptpay_qr_url",
]
