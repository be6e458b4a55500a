"""Slip authenticity heuristics run before a transfer slip is uploaded."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import numpy as np

from ..config import Settings, get_settings
from ..models import SlipValidationResult, UploadedSlipImage
from .image import count_bright_points, decode_image
from .qr import QrDecoder, load_qr_decoder, scan_for_qr

logger = logging.getLogger(__name__)

# ==================== rejection reasons ====================

REASON_NOT_IMAGE = "select an image file"
REASON_FILE_TOO_LARGE = "file must not exceed 5MB"
REASON_FILE_TOO_SMALL = "file too small, upload a clear slip"
REASON_IMAGE_TOO_SMALL = "image too small, upload a clear slip"
REASON_NOT_PORTRAIT = "receipt should be portrait orientation"
REASON_BACKGROUND = "background doesn't look like a receipt"
REASON_NO_QR = "no QR code found; bank slips must contain one"
REASON_QR_UNAVAILABLE = "QR scanner unavailable; the slip's QR code could not be checked"
REASON_UNREADABLE = "cannot read image"

MIN_WIDTH = 200
MIN_HEIGHT = 300
MIN_ASPECT_RATIO = 0.8
MIN_BRIGHT_POINTS = 2


def prefilter(content_type: str, size: int, settings: Optional[Settings] = None) -> SlipValidationResult:
    """Checks done on file metadata alone, before the authenticator runs."""
    settings = settings or get_settings()
    if not (content_type or "").lower().startswith("image/"):
        return SlipValidationResult.reject(REASON_NOT_IMAGE)
    if size > settings.max_slip_bytes:
        return SlipValidationResult.reject(REASON_FILE_TOO_LARGE)
    return SlipValidationResult.ok()


class SlipAuthenticator:
    """Decides whether an image plausibly is a bank-transfer slip.

    Checks run cheapest first and stop at the first failure:
    file size floor, pixel dimensions, aspect ratio, background brightness,
    QR presence. ``validate`` never raises; any internal failure becomes a
    "cannot read image" rejection.
    """

    def __init__(
        self,
        decoder: Optional[QrDecoder] = None,
        settings: Optional[Settings] = None,
        *,
        distinguish_qr_unavailable: bool = True,
    ):
        """
        Args:
            decoder: QR decoding capability; loaded from OpenCV when omitted
            settings: Storefront settings
            distinguish_qr_unavailable: Report a missing QR capability with its own
                reason instead of the plain "no QR code" message
        """
        self.settings = settings or get_settings()
        self.decoder = decoder if decoder is not None else load_qr_decoder()
        self.distinguish_qr_unavailable = distinguish_qr_unavailable

    async def validate(self, image: UploadedSlipImage) -> SlipValidationResult:
        """Validate a slip without blocking the event loop."""
        try:
            result = await asyncio.to_thread(self.check, image)
        except Exception as exc:
            logger.error(f"[slip] validation crashed for {image.filename}: {exc!r}")
            result = SlipValidationResult.reject(REASON_UNREADABLE)
        if not result.valid:
            logger.info(f"[slip] rejected {image.filename} ({image.size} bytes): {result.reason}")
        return result

    def check(self, image: UploadedSlipImage) -> SlipValidationResult:
        """Synchronous pipeline behind ``validate``."""
        if image.size < self.settings.min_slip_bytes:
            return SlipValidationResult.reject(REASON_FILE_TOO_SMALL)

        pixels = decode_image(image.content)
        if pixels is None:
            return SlipValidationResult.reject(REASON_UNREADABLE)
        return self.check_pixels(pixels)

    def check_pixels(self, pixels: np.ndarray) -> SlipValidationResult:
        height, width = pixels.shape[:2]

        if width < MIN_WIDTH or height < MIN_HEIGHT:
            return SlipValidationResult.reject(REASON_IMAGE_TOO_SMALL)

        if height / width < MIN_ASPECT_RATIO:
            return SlipValidationResult.reject(REASON_NOT_PORTRAIT)

        if count_bright_points(pixels) < MIN_BRIGHT_POINTS:
            return SlipValidationResult.reject(REASON_BACKGROUND)

        if not scan_for_qr(pixels, self.decoder, max_side=self.settings.qr_scan_max_side):
            if not self.decoder.available and self.distinguish_qr_unavailable:
                return SlipValidationResult.reject(REASON_QR_UNAVAILABLE)
            return SlipValidationResult.reject(REASON_NO_QR)

        return SlipValidationResult.ok()


__all__ = [
    "MIN_ASPECT_RATIO",
    "MIN_HEIGHT",
    "MIN_WIDTH",
    "REASON_BACKGROUND",
    "REASON_FILE_TOO_LARGE",
    "REASON_FILE_TOO_SMALL",
    "REASON_IMAGE_TOO_SMALL",
    "REASON_NOT_IMAGE",
    "REASON_NOT_PORTRAIT",
    "REASON_NO_QR",
    "REASON_QR_UNAVAILABLE",
    "REASON_UNREADABLE",
    "SlipAuthenticator",
    "prefilter",
]
