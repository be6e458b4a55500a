"""Order lifecycle - which status transitions are offered and how they are sent

Happy path ``pending -> confirmed -> preparing -> shipping -> delivered``;
``cancelled`` is the absorbing failure state. Offered actions depend only on
``orderStatus``. The backend stays the authority on legality; the tables
here decide what the storefront offers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..backend import BackendAPIError, BackendClient, BackendResult
from ..errors import OrderBusy, TransitionNotAllowed
from ..models import Order, OrderItem, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

CANCEL_WARNING = "Cancel this order? Stock will be returned automatically and this cannot be undone."
UPDATE_FAILED_MESSAGE = "could not update order, please try again"


class OrderAction(str, Enum):
    """Operator actions on an order"""
    CONFIRM = "confirm"
    CANCEL = "cancel"
    START_PREPARING = "start_preparing"
    SHIP = "ship"
    MARK_DELIVERED = "mark_delivered"


class Actor(str, Enum):
    """Who is driving the transition"""
    ADMIN = "admin"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Transition:
    """One row of a transition table"""
    action: OrderAction
    label: str
    order_status: OrderStatus
    payment_status: Optional[PaymentStatus] = None  # None leaves payment untouched


_CONFIRM = Transition(OrderAction.CONFIRM, "Confirm order", OrderStatus.CONFIRMED, PaymentStatus.PAID)
_CANCEL = Transition(OrderAction.CANCEL, "Cancel", OrderStatus.CANCELLED)
_PREPARE = Transition(OrderAction.START_PREPARING, "Start preparing", OrderStatus.PREPARING)
_SHIP = Transition(OrderAction.SHIP, "Ship", OrderStatus.SHIPPING)
_DELIVER = Transition(OrderAction.MARK_DELIVERED, "Mark delivered", OrderStatus.DELIVERED)

ADMIN_TRANSITIONS: Dict[OrderStatus, Tuple[Transition, ...]] = {
    OrderStatus.PENDING: (_CONFIRM, _CANCEL),
    OrderStatus.CONFIRMED: (_PREPARE,),
    OrderStatus.PREPARING: (_SHIP,),
    OrderStatus.SHIPPING: (_DELIVER,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

# customers may withdraw an order until it is being prepared
CUSTOMER_TRANSITIONS: Dict[OrderStatus, Tuple[Transition, ...]] = {
    OrderStatus.PENDING: (_CANCEL,),
    OrderStatus.CONFIRMED: (_CANCEL,),
}


def available_transitions(status: OrderStatus, actor: Actor = Actor.ADMIN) -> Tuple[Transition, ...]:
    table = ADMIN_TRANSITIONS if actor == Actor.ADMIN else CUSTOMER_TRANSITIONS
    return table.get(status, ())


def available_actions(status: OrderStatus, actor: Actor = Actor.ADMIN) -> List[OrderAction]:
    return [t.action for t in available_transitions(status, actor)]


@dataclass(frozen=True)
class TransitionRequest:
    """Exactly one outbound request for one operator action"""
    order_id: int
    action: OrderAction
    order_status: OrderStatus
    payment_status: Optional[PaymentStatus] = None

    @property
    def is_cancel(self) -> bool:
        return self.action == OrderAction.CANCEL

    @property
    def requires_confirmation(self) -> bool:
        return self.is_cancel

    @property
    def warning(self) -> Optional[str]:
        return CANCEL_WARNING if self.is_cancel else None


def plan_transition(order: Order, action: OrderAction, actor: Actor = Actor.ADMIN) -> TransitionRequest:
    """Turn an action into the request to send.

    Raises:
        TransitionNotAllowed: If the action is not offered for the current status
    """
    for transition in available_transitions(order.order_status, actor):
        if transition.action == action:
            return TransitionRequest(
                order_id=order.id,
                action=action,
                order_status=transition.order_status,
                payment_status=transition.payment_status,
            )
    raise TransitionNotAllowed(
        f"'{action.value}' is not available for an order in status '{order.order_status.value}'"
    )


@dataclass
class TransitionOutcome:
    """Result of a transition attempt, with the re-fetched order state"""
    success: bool
    message: Optional[str] = None
    order: Optional[Order] = None
    items: Optional[List[OrderItem]] = None
    needs_confirmation: bool = False


class OrderLifecycle:
    """Sends transition requests and re-reads the authoritative order afterwards.

    No local state is changed speculatively: whatever happened, the order
    is fetched again and that copy is returned. While a request for an
    order is outstanding, further transitions on it raise ``OrderBusy``.
    """

    def __init__(
        self,
        backend: BackendClient,
        actor: Actor = Actor.ADMIN,
        *,
        in_flight: Optional[Set[int]] = None,
    ):
        """
        Args:
            backend: Backend client used for the request and the re-fetch
            actor: Which transition table applies
            in_flight: Shared set of order ids with an outstanding request
        """
        self.backend = backend
        self.actor = actor
        self.in_flight = in_flight if in_flight is not None else set()

    def is_updating(self, order_id: int) -> bool:
        return order_id in self.in_flight

    def actions_for(self, order: Order) -> List[OrderAction]:
        if self.is_updating(order.id):
            return []
        return available_actions(order.order_status, self.actor)

    async def _send(self, request: TransitionRequest) -> BackendResult:
        if request.is_cancel:
            return await self.backend.cancel_order(request.order_id)
        return await self.backend.update_order_status(
            request.order_id,
            request.order_status,
            request.payment_status,
        )

    async def transition(
        self,
        order: Order,
        action: OrderAction,
        *,
        confirmed: bool = False,
    ) -> TransitionOutcome:
        """Apply ``action`` to ``order``.

        Args:
            order: Current (last fetched) state of the order
            action: Requested action
            confirmed: The operator acknowledged the cancellation warning

        Raises:
            TransitionNotAllowed: If the action is not offered for the order's status
            OrderBusy: If another request for this order is still outstanding
        """
        request = plan_transition(order, action, self.actor)

        if request.requires_confirmation and not confirmed:
            return TransitionOutcome(
                success=False,
                message=request.warning,
                order=order,
                needs_confirmation=True,
            )

        if order.id in self.in_flight:
            raise OrderBusy(f"order {order.id} is already being updated")

        self.in_flight.add(order.id)
        try:
            logger.info(
                f"[orders] {self.actor.value} {action.value} order={order.id} "
                f"{order.order_status.value}->{request.order_status.value}"
            )
            try:
                result = await self._send(request)
                success, message = result.success, result.message
                if not success and not message:
                    message = UPDATE_FAILED_MESSAGE
            except BackendAPIError as exc:
                success, message = False, exc.message

            if not success:
                logger.warning(f"[orders] {action.value} order={order.id} rejected: {message}")

            try:
                detail = await self.backend.get_order(order.id)
            except BackendAPIError as exc:
                logger.warning(f"[orders] re-fetch of order={order.id} failed: {exc.message}")
                detail = None
        finally:
            self.in_flight.discard(order.id)

        return TransitionOutcome(
            success=success,
            message=message,
            order=detail.order if detail else None,
            items=detail.items if detail else None,
        )


__all__ = [
    "ADMIN_TRANSITIONS",
    "CANCEL_WARNING",
    "CUSTOMER_TRANSITIONS",
    "UPDATE_FAILED_MESSAGE",
    "Actor",
    "OrderAction",
    "OrderLifecycle",
    "Transition",
    "TransitionOutcome",
    "TransitionRequest",
    "available_actions",
    "available_transitions",
    "plan_transition",
]
