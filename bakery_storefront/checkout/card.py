"""Input formatting for the card payment form."""

from __future__ import annotations

import re


def format_card_number(value: str) -> str:
    """Group digits in fours, e.g. ``4242 4242 4242 4242`` (at most 19 chars)."""
    digits = re.sub(r"\s", "", value or "")
    return re.sub(r"(\d{4})", r"\1 ", digits).strip()[:19]


def format_expiry(value: str) -> str:
    """Keep digits and insert the slash: ``1228`` -> ``12/28``."""
    digits = re.sub(r"\D", "", value or "")
    return re.sub(r"^(\d{2})(\d)", r"\1/\2", digits)[:5]


def format_cvc(value: str) -> str:
    return re.sub(r"\D", "", value or "")[:4]


def card_last4(card_number: str) -> str:
    return re.sub(r"\D", "", card_number or "")[-4:]


__all__ = ["card_last4", "format_card_number", "format_cvc", "format_expiry"]
