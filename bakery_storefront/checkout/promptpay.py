"""PromptPay QR shown to the customer at checkout."""

from __future__ import annotations

import logging

from ..backend import BackendAPIError, BackendClient

logger = logging.getLogger(__name__)


def _format_amount(amount: float) -> str:
    """Whole amounts without a decimal point, others in shortest form (``150.5``)."""
    value = float(amount)
    return str(int(value)) if value.is_integer() else repr(value)


def fallback_qr_url(promptpay_id: str, amount: float) -> str:
    """Public promptpay.io image for ``amount``."""
    return f"https://promptpay.io/{promptpay_id}/{_format_amount(amount)}.png"


async def promptpay_qr_url(backend: BackendClient, amount: float) -> str:
    """Backend-generated QR as a data URL, or the promptpay.io image if that fails."""
    try:
        encoded = await backend.generate_promptpay(amount)
    except BackendAPIError as exc:
        logger.warning(f"[checkout] PromptPay QR generation failed: {exc.message}")
        encoded = None
    if encoded:
        return f"data:image/png;base64,{encoded}"
    return fallback_qr_url(backend.settings.promptpay_id, amount)


__all__ = ["fallback_qr_url", "promptpay_qr_url"]
