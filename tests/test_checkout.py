import asyncio
from datetime import timedelta

import pytest

from bakery_storefront.checkout import CheckoutService, CheckoutSessionManager, CheckoutState, fallback_qr_url
from bakery_storefront.errors import CheckoutError
from bakery_storefront.models import CardDetails, OrderSummary, PaymentMethod, ShippingInfo, SlipValidationResult
from bakery_storefront.slip import SlipAuthenticator

from .conftest import RecordingDecoder, make_slip_pixels, slip_image

SHIPPING = ShippingInfo(fullname="Ploy S.", phone="0812345678", address="99 Sukhumvit Rd, Bangkok")


@pytest.fixture
def service(backend, always_qr_authenticator):
    return CheckoutService(backend, always_qr_authenticator, CheckoutSessionManager())


@pytest.fixture
async def checkout(service):
    session = await service.start("ploy@example.com")
    service.update_shipping(session, SHIPPING)
    return session


async def test_start_snapshots_cart_totals(service):
    session = await service.start("ploy@example.com", fullname="Ploy")

    assert session.summary.subtotal == 240
    assert session.summary.total == session.summary.subtotal + session.summary.shipping
    assert session.shipping.fullname == "Ploy"
    assert session.qr_code_url == "data:image/png;base64,iVBORw0KGgo="


async def test_promptpay_falls_back_to_public_image(service, fake_backend):
    fake_backend.promptpay_down = True

    session = await service.start("ploy@example.com")

    assert session.qr_code_url == fallback_qr_url("0931253748", 240) == "https://promptpay.io/0931253748/240.png"


@pytest.mark.parametrize("amount,expected", [(240, "240"), (240.0, "240"), (150.5, "150.5"), (99.25, "99.25")])
def test_fallback_qr_url_uses_shortest_amount(amount, expected):
    assert fallback_qr_url("0931253748", amount) == f"https://promptpay.io/0931253748/{expected}.png"


async def test_empty_cart_cannot_check_out(service, fake_backend):
    fake_backend.cart = []

    with pytest.raises(CheckoutError):
        await service.start("ploy@example.com")


async def test_qr_checkout_without_slip_is_rejected_before_any_request(service, checkout, fake_backend):
    fake_backend.clear_log()

    with pytest.raises(CheckoutError):
        await service.submit(checkout)
    assert fake_backend.requests == []


async def test_qr_checkout_with_rejected_slip_makes_no_request(service, checkout, fake_backend):
    result = await service.select_slip(checkout, slip_image(make_slip_pixels(width=600, height=400)))
    fake_backend.clear_log()

    assert result.valid is False
    with pytest.raises(CheckoutError):
        await service.submit(checkout)
    assert fake_backend.requests == []
    assert checkout.state == CheckoutState.OPEN


async def test_non_image_slip_is_rejected(service, checkout):
    result = await service.select_slip(checkout, slip_image(make_slip_pixels(), content_type="text/plain"))

    assert result.reason == "select an image file"
    assert checkout.slip.valid is False


async def test_qr_checkout_uploads_slip_and_creates_pending_order(service, checkout, fake_backend):
    await service.select_slip(checkout, slip_image(make_slip_pixels()))
    assert checkout.can_submit() is True

    order_id = await service.submit(checkout)

    created = fake_backend.orders[order_id]
    assert created["paymentMethod"] == "qr_promptpay"
    assert created["paymentStatus"] == "pending"
    assert created["slipImage"] == "/uploads/slips/new.bmp"
    payload = fake_backend.bodies[fake_backend.requests.index(("POST", "/api/orders"))]
    assert sum(i["price"] * i["quantity"] for i in payload["items"]) == payload["subtotal"]
    assert payload["total"] == payload["subtotal"] + payload["shipping"]
    assert payload["shippingInfo"]["address"] == SHIPPING.address
    assert fake_backend.cart == []
    assert checkout.state == CheckoutState.COMPLETED
    assert checkout.slip.image is None


async def test_card_checkout_creates_paid_order(service, checkout, fake_backend):
    service.set_payment(
        checkout,
        PaymentMethod.CARD,
        CardDetails(card_number="4242424242424242", expiry="1228", cvc="123", name="PLOY S"),
    )
    assert checkout.card.card_number == "4242 4242 4242 4242"
    assert checkout.card.expiry == "12/28"

    order_id = await service.submit(checkout)

    assert fake_backend.orders[order_id]["paymentStatus"] == "paid"
    payload = fake_backend.bodies[fake_backend.requests.index(("POST", "/api/orders"))]
    assert payload["cardLast4"] == "4242"
    assert payload["paymentId"] == "ch_001"
    assert fake_backend.calls("POST", "/api/slip/upload") == 0


async def test_declined_card_stops_before_order_creation(service, checkout, fake_backend):
    service.set_payment(
        checkout,
        PaymentMethod.CARD,
        CardDetails(card_number="4000000000000002", expiry="12/28", cvc="123", name="PLOY S"),
    )

    with pytest.raises(CheckoutError, match="card declined"):
        await service.submit(checkout)
    assert fake_backend.calls("POST", "/api/orders") == 0
    assert checkout.state == CheckoutState.OPEN
    assert checkout.error == "card declined"


async def test_incomplete_shipping_is_rejected(service, fake_backend):
    session = await service.start("ploy@example.com")
    session.payment_method = PaymentMethod.CARD

    with pytest.raises(CheckoutError, match="shipping"):
        await service.submit(session)


async def test_submit_blocked_while_slip_is_validating(service, checkout):
    checkout.slip.select(slip_image(make_slip_pixels()))

    with pytest.raises(CheckoutError, match="still being checked"):
        await service.submit(checkout)


async def test_removed_slip_ignores_late_verdict(backend, settings, checkout):
    release = asyncio.Event()

    class SlowAuthenticator(SlipAuthenticator):
        async def validate(self, image):
            await release.wait()
            return SlipValidationResult.ok()

    service = CheckoutService(backend, SlowAuthenticator(RecordingDecoder(), settings), CheckoutSessionManager())
    pending = asyncio.create_task(service.select_slip(checkout, slip_image(make_slip_pixels())))
    await asyncio.sleep(0)
    assert checkout.slip.validating is True

    service.remove_slip(checkout)
    release.set()
    await pending

    assert checkout.slip.image is None
    assert checkout.slip.valid is False


async def test_completed_checkout_cannot_be_resubmitted(service, checkout, fake_backend):
    await service.select_slip(checkout, slip_image(make_slip_pixels()))
    await service.submit(checkout)

    with pytest.raises(CheckoutError):
        await service.submit(checkout)
    assert fake_backend.calls("POST", "/api/orders") == 1


async def test_reopening_checkout_abandons_previous_session(service):
    first = await service.start("ploy@example.com")
    second = await service.start("ploy@example.com")

    assert first.state == CheckoutState.ABANDONED
    assert second.is_active()
    assert service.manager.get_user_sessions("ploy@example.com", active_only=True) == [second]


def test_stale_sessions_are_cleaned_up():
    manager = CheckoutSessionManager()
    old = manager.create_session("ploy@example.com", OrderSummary())
    fresh = manager.create_session("nok@example.com", OrderSummary())
    old.updated_at = old.updated_at - timedelta(hours=30)

    assert manager.cleanup_old_sessions() == 1
    assert manager.get_session(old.session_id) is None
    assert manager.get_session(fresh.session_id) is fresh
