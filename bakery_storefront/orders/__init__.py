"""Order lifecycle and order list queries."""

from __future__ import annotations

from .lifecycle import (
    CANCEL_WARNING,
    UPDATE_FAILED_MESSAGE,
    Actor,
    OrderAction,
    OrderLifecycle,
    TransitionOutcome,
    TransitionRequest,
    available_actions,
    available_transitions,
    plan_transition,
)
from .query import filter_orders, parse_order_number, status_counts

__all__ = [
    "CANCEL_WARNING",
    "UPDATE_FAILED_MESSAGE",
    "Actor",
    "OrderAction",
    "OrderLifecycle",
    "TransitionOutcome",
    "TransitionRequest",
    "available_actions",
    "available_transitions",
    "filter_orders",
    "parse_order_number",
    "plan_transition",
    "status_counts",
]
