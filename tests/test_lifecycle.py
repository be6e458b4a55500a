import pytest

from bakery_storefront.errors import OrderBusy, TransitionNotAllowed
from bakery_storefront.models import Order, OrderStatus, PaymentStatus
from bakery_storefront.orders import (
    CANCEL_WARNING,
    UPDATE_FAILED_MESSAGE,
    Actor,
    OrderAction,
    OrderLifecycle,
    available_actions,
    plan_transition,
)


@pytest.mark.parametrize(
    "status,expected",
    [
        (OrderStatus.PENDING, [OrderAction.CONFIRM, OrderAction.CANCEL]),
        (OrderStatus.CONFIRMED, [OrderAction.START_PREPARING]),
        (OrderStatus.PREPARING, [OrderAction.SHIP]),
        (OrderStatus.SHIPPING, [OrderAction.MARK_DELIVERED]),
        (OrderStatus.DELIVERED, []),
        (OrderStatus.CANCELLED, []),
    ],
)
def test_admin_actions_follow_the_transition_table(status, expected):
    assert available_actions(status) == expected


@pytest.mark.parametrize("payment", list(PaymentStatus))
def test_offered_actions_ignore_payment_status(payment):
    order = Order(id=1, order_status=OrderStatus.PENDING, payment_status=payment)

    assert plan_transition(order, OrderAction.CONFIRM).order_status == OrderStatus.CONFIRMED


@pytest.mark.parametrize(
    "status,expected",
    [
        (OrderStatus.PENDING, [OrderAction.CANCEL]),
        (OrderStatus.CONFIRMED, [OrderAction.CANCEL]),
        (OrderStatus.PREPARING, []),
        (OrderStatus.SHIPPING, []),
        (OrderStatus.DELIVERED, []),
        (OrderStatus.CANCELLED, []),
    ],
)
def test_customer_may_cancel_until_preparation(status, expected):
    assert available_actions(status, Actor.CUSTOMER) == expected


def test_confirm_marks_payment_paid():
    request = plan_transition(Order(id=5), OrderAction.CONFIRM)

    assert request.order_status == OrderStatus.CONFIRMED
    assert request.payment_status == PaymentStatus.PAID
    assert request.is_cancel is False


def test_cancel_leaves_payment_alone_and_asks_for_confirmation():
    request = plan_transition(Order(id=5), OrderAction.CANCEL)

    assert request.order_status == OrderStatus.CANCELLED
    assert request.payment_status is None
    assert request.requires_confirmation is True
    assert request.warning == CANCEL_WARNING


def test_unlisted_transition_is_refused():
    with pytest.raises(TransitionNotAllowed):
        plan_transition(Order(id=5, order_status=OrderStatus.DELIVERED), OrderAction.CANCEL)
    with pytest.raises(TransitionNotAllowed):
        plan_transition(Order(id=5, order_status=OrderStatus.PENDING), OrderAction.SHIP)


async def test_confirm_updates_status_and_payment(backend, fake_backend):
    lifecycle = OrderLifecycle(backend)
    order = (await backend.get_order(1)).order

    outcome = await lifecycle.transition(order, OrderAction.CONFIRM)

    assert outcome.success is True
    assert outcome.order.order_status == OrderStatus.CONFIRMED
    assert outcome.order.payment_status == PaymentStatus.PAID
    assert fake_backend.bodies[-2] == {"orderStatus": "confirmed", "paymentStatus": "paid"}


async def test_cancel_uses_cancel_endpoint_and_keeps_payment(backend, fake_backend):
    lifecycle = OrderLifecycle(backend)
    order = (await backend.get_order(1)).order
    stock_before = dict(fake_backend.stock)

    outcome = await lifecycle.transition(order, OrderAction.CANCEL, confirmed=True)

    assert outcome.success is True
    assert outcome.order.order_status == OrderStatus.CANCELLED
    assert outcome.order.payment_status == order.payment_status
    assert fake_backend.calls("PUT", "/api/orders/1/cancel") == 1
    assert fake_backend.calls("PUT", "/api/orders/1/status") == 0
    assert fake_backend.stock[7] == stock_before[7] + 2


async def test_unconfirmed_cancel_sends_nothing(backend, fake_backend):
    lifecycle = OrderLifecycle(backend)
    order = (await backend.get_order(1)).order
    fake_backend.clear_log()

    outcome = await lifecycle.transition(order, OrderAction.CANCEL)

    assert outcome.needs_confirmation is True
    assert outcome.message == CANCEL_WARNING
    assert fake_backend.requests == []


async def test_rejected_transition_surfaces_message_and_refetches(backend, fake_backend):
    fake_backend.reject_status_updates = "order is locked by another admin"
    lifecycle = OrderLifecycle(backend)
    order = (await backend.get_order(2)).order
    fake_backend.clear_log()

    outcome = await lifecycle.transition(order, OrderAction.START_PREPARING)

    assert outcome.success is False
    assert outcome.message == "order is locked by another admin"
    assert outcome.order.order_status == OrderStatus.CONFIRMED
    assert fake_backend.requests[-1] == ("GET", "/api/orders/2")


async def test_rejection_without_message_still_explains_itself(backend, fake_backend):
    fake_backend.reject_status_updates = ""
    lifecycle = OrderLifecycle(backend)
    order = (await backend.get_order(1)).order

    outcome = await lifecycle.transition(order, OrderAction.CONFIRM)

    assert outcome.success is False
    assert outcome.message == UPDATE_FAILED_MESSAGE
    assert outcome.order.order_status == OrderStatus.PENDING


async def test_unreachable_backend_is_reported_not_raised(backend, fake_backend):
    lifecycle = OrderLifecycle(backend)
    order = (await backend.get_order(2)).order
    fake_backend.down = True

    outcome = await lifecycle.transition(order, OrderAction.START_PREPARING)

    assert outcome.success is False
    assert outcome.message == "cannot reach server"
    assert outcome.order is None
    assert lifecycle.is_updating(2) is False


async def test_outstanding_request_blocks_second_transition(backend):
    lifecycle = OrderLifecycle(backend, in_flight={1})
    order = (await backend.get_order(1)).order

    assert lifecycle.actions_for(order) == []
    with pytest.raises(OrderBusy):
        await lifecycle.transition(order, OrderAction.CONFIRM)
