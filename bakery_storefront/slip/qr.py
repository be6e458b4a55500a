"""QR detection over decoded slip pixels.

A single full-frame pass often misses the small or off-centre codes found on
cropped banking-app screenshots, so ``scan_for_qr`` retries on fixed
sub-regions and then on upscaled copies, stopping at the first hit.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

import cv2
import numpy as np

from ..config import QR_SCAN_MAX_SIDE

logger = logging.getLogger(__name__)

# (x, y, w, h) as fractions of the image
SCAN_REGIONS: Tuple[Tuple[float, float, float, float], ...] = (
    (0.0, 0.0, 0.5, 0.5),
    (0.5, 0.0, 0.5, 0.5),
    (0.0, 0.5, 0.5, 0.5),
    (0.5, 0.5, 0.5, 0.5),
    (0.15, 0.15, 0.7, 0.7),
    (0.25, 0.0, 0.5, 0.5),
    (0.25, 0.5, 0.5, 0.5),
)
SCAN_SCALES: Tuple[float, ...] = (1.5, 2.0)
MIN_REGION_SIDE = 50


class QrDecoder(Protocol):
    """Anything that can pull QR text out of a pixel buffer."""

    available: bool

    def decode(self, pixels: np.ndarray, width: int, height: int) -> Optional[str]:
        ...


class OpenCvQrDecoder:
    """QR decoding backed by ``cv2.QRCodeDetector``."""

    available = True

    def __init__(self) -> None:
        self._detector = cv2.QRCodeDetector()

    def decode(self, pixels: np.ndarray, width: int, height: int) -> Optional[str]:
        if pixels.shape[0] != height or pixels.shape[1] != width:
            raise ValueError(f"pixel buffer is {pixels.shape[1]}x{pixels.shape[0]}, expected {width}x{height}")
        try:
            text, points, _ = self._detector.detectAndDecode(pixels)
        except cv2.error as exc:
            logger.debug(f"[slip] QR detector error on {width}x{height}: {exc}")
            return None
        if points is None or not text:
            return None
        return text


class UnavailableQrDecoder:
    """Stand-in used when the detector could not be initialised; never finds a code."""

    available = False

    def decode(self, pixels: np.ndarray, width: int, height: int) -> Optional[str]:
        return None


def load_qr_decoder() -> QrDecoder:
    """Build the OpenCV decoder, degrading to ``UnavailableQrDecoder`` on failure."""
    try:
        return OpenCvQrDecoder()
    except (AttributeError, cv2.error) as exc:
        logger.warning(f"[slip] QR detection unavailable, slips will fail the QR check: {exc}")
        return UnavailableQrDecoder()


def _region_box(width: int, height: int, region: Tuple[float, float, float, float]) -> Tuple[int, int, int, int]:
    rx, ry, rw, rh = region
    return int(width * rx), int(height * ry), int(width * rw), int(height * rh)


def scan_for_qr(
    pixels: np.ndarray,
    decoder: QrDecoder,
    *,
    max_side: int = QR_SCAN_MAX_SIDE,
) -> Optional[str]:
    """Look for a QR code: full frame, then sub-regions, then upscaled copies.

    Args:
        pixels: Decoded image, ``height x width x channels``
        decoder: QR decoding capability
        max_side: Upscaled copies larger than this on either axis are skipped

    Returns:
        The decoded QR text of the first hit, or None
    """
    height, width = pixels.shape[:2]

    text = decoder.decode(pixels, width, height)
    if text:
        return text

    for region in SCAN_REGIONS:
        sx, sy, sw, sh = _region_box(width, height, region)
        if sw < MIN_REGION_SIDE or sh < MIN_REGION_SIDE:
            continue
        crop = np.ascontiguousarray(pixels[sy:sy + sh, sx:sx + sw])
        text = decoder.decode(crop, sw, sh)
        if text:
            logger.debug(f"[slip] QR found in region {region}")
            return text

    for scale in SCAN_SCALES:
        scaled_w, scaled_h = int(width * scale), int(height * scale)
        if scaled_w > max_side or scaled_h > max_side:
            continue
        scaled = cv2.resize(pixels, (scaled_w, scaled_h), interpolation=cv2.INTER_LINEAR)
        text = decoder.decode(scaled, scaled_w, scaled_h)
        if text:
            logger.debug(f"[slip] QR found at scale {scale}")
            return text

    return None


__all__ = [
    "MIN_REGION_SIDE",
    "OpenCvQrDecoder",
    "QrDecoder",
    "SCAN_REGIONS",
    "SCAN_SCALES",
    "UnavailableQrDecoder",
    "load_qr_decoder",
    "scan_for_qr",
]
