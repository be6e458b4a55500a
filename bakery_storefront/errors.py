"""Exception types shared by the storefront modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

UNREACHABLE_MESSAGE = "cannot reach server"


@dataclass
class BackendAPIError(Exception):
    """Transport-level failure talking to the bakery backend."""

    status: Optional[int]
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        code = self.status if self.status is not None else "-"
        return f"[{code}] {self.message}"


class CheckoutError(ValueError):
    """Checkout could not proceed; the message is safe to show to the user."""


class TransitionNotAllowed(ValueError):
    """The requested action is not offered for the order's current status."""


class OrderBusy(RuntimeError):
    """A transition request for this order is still outstanding."""


__all__ = [
    "UNREACHABLE_MESSAGE",
    "BackendAPIError",
    "CheckoutError",
    "OrderBusy",
    "TransitionNotAllowed",
]
