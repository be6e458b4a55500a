"""Order list filtering used by the admin and customer order pages."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from ..models import Order, OrderStatus

ALL = "all"


def filter_orders(orders: Iterable[Order], status: str = ALL, search: str = "") -> List[Order]:
    """Keep orders matching ``status`` (or ``all``) and the free-text ``search``.

    The search matches the order id as a substring, or the email / receiver
    name case-insensitively.
    """
    term = (search or "").strip().lower()
    matched = []
    for order in orders:
        if status and status != ALL and order.order_status.value != status:
            continue
        if term and not (
            term in str(order.id)
            or term in order.email.lower()
            or term in (order.receiver_name or "").lower()
        ):
            continue
        matched.append(order)
    return matched


def status_counts(orders: Iterable[Order]) -> Dict[str, int]:
    """Order count per status plus ``all``."""
    orders = list(orders)
    counts = {ALL: len(orders)}
    for status in OrderStatus:
        counts[status.value] = sum(1 for o in orders if o.order_status == status)
    return counts


def parse_order_number(raw: str) -> Optional[int]:
    """``"ORD000123"`` -> ``123``; plain digits are accepted too."""
    cleaned = (raw or "").strip().upper().replace("ORD", "", 1).lstrip("0")
    if not cleaned:
        return None
    if not re.fullmatch(r"\d+", cleaned):
        return None
    return int(cleaned)


__all__ = ["ALL", "filter_orders", "parse_order_number", "status_counts"]
