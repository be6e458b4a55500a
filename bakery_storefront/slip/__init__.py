"""Transfer-slip checks for the QR PromptPay payment flow."""

from __future__ import annotations

from .authenticator import SlipAuthenticator, prefilter
from .qr import OpenCvQrDecoder, QrDecoder, UnavailableQrDecoder, load_qr_decoder, scan_for_qr
from .selection import SlipSelection

__all__ = [
    "OpenCvQrDecoder",
    "QrDecoder",
    "SlipAuthenticator",
    "SlipSelection",
    "UnavailableQrDecoder",
    "load_qr_decoder",
    "prefilter",
    "scan_for_qr",
]
