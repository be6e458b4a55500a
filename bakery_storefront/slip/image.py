"""Pixel-level helpers for slip images."""

from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

BRIGHTNESS_THRESHOLD = 150
SAMPLE_INSET = 10


def _to_8bit(pixels: np.ndarray) -> Optional[np.ndarray]:
    if pixels.dtype == np.uint8:
        return pixels
    if pixels.dtype == np.uint16:
        return (pixels >> 8).astype(np.uint8)
    return None


def composite_on_black(pixels: np.ndarray) -> np.ndarray:
    """Flatten a 4-channel image the way a canvas reads it back: colour scaled by alpha."""
    alpha = pixels[..., 3:4].astype(np.uint16)
    colour = pixels[..., :3].astype(np.uint16)
    return ((colour * alpha + 127) // 255).astype(np.uint8)


def decode_image(content: bytes) -> Optional[np.ndarray]:
    """Decode encoded image bytes into a ``height x width x 3`` array, or None if unreadable.

    Transparent pixels come out black, so a see-through background does not
    pass for white paper.
    """
    if not content:
        return None
    buffer = np.frombuffer(content, np.uint8)
    raw = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if raw is None:
        return None
    if raw.ndim == 3 and raw.shape[2] == 4:
        raw = _to_8bit(raw)
        return composite_on_black(raw) if raw is not None else None
    # IMREAD_COLOR also applies EXIF orientation
    return cv2.imdecode(buffer, cv2.IMREAD_COLOR)


def sample_points(width: int, height: int) -> List[Tuple[int, int]]:
    """Four corners inset by 10px plus the top centre, as (x, y)."""
    return [
        (SAMPLE_INSET, SAMPLE_INSET),
        (width - SAMPLE_INSET, SAMPLE_INSET),
        (width // 2, SAMPLE_INSET),
        (SAMPLE_INSET, height - SAMPLE_INSET),
        (width - SAMPLE_INSET, height - SAMPLE_INSET),
    ]


def count_bright_points(pixels: np.ndarray, threshold: int = BRIGHTNESS_THRESHOLD) -> int:
    """How many sample points have mean channel brightness above ``threshold``."""
    height, width = pixels.shape[:2]
    bright = 0
    for x, y in sample_points(width, height):
        x = min(max(x, 0), width - 1)
        y = min(max(y, 0), height - 1)
        brightness = float(pixels[y, x, :3].mean())
        if brightness > threshold:
            bright += 1
    return bright


__all__ = [
    "BRIGHTNESS_THRESHOLD",
    "composite_on_black",
    "count_bright_points",
    "decode_image",
    "sample_points",
]
