from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import cv2
import httpx
import numpy as np
import pytest
import qrcode

from bakery_storefront.backend import BackendClient
from bakery_storefront.config import Settings
from bakery_storefront.models import UploadedSlipImage
from bakery_storefront.session import StaticSessionProvider
from bakery_storefront.slip import SlipAuthenticator

QR_TEXT = "0041000600000101030040220014242082547BPM049885102TH9104E3F1"


# ==================== slip images ====================

def qr_block(text: str = QR_TEXT, module: int = 6) -> np.ndarray:
    """Black-on-white QR code (with quiet zone) as a 2-D uint8 array."""
    qr = qrcode.QRCode(box_size=1, border=4)
    qr.add_data(text)
    qr.make(fit=True)
    matrix = np.array(qr.get_matrix(), dtype=bool)
    block = np.where(matrix, 0, 255).astype(np.uint8)
    return np.kron(block, np.ones((module, module), dtype=np.uint8))


def make_slip_pixels(
    width: int = 400,
    height: int = 600,
    background: int = 255,
    qr_at: Optional[Tuple[int, int]] = (100, 150),
    module: int = 6,
    text: str = QR_TEXT,
) -> np.ndarray:
    pixels = np.full((height, width, 3), background, dtype=np.uint8)
    # a dark "amount" band like a real slip has
    pixels[height - 80:height - 60, 40:width - 40] = 40
    if qr_at is not None:
        block = qr_block(text, module)
        x, y = qr_at
        h, w = block.shape
        pixels[y:y + h, x:x + w] = block[..., None]
    return pixels


def encode(pixels: np.ndarray, ext: str = ".bmp") -> bytes:
    ok, buffer = cv2.imencode(ext, pixels)
    assert ok
    return buffer.tobytes()


def slip_image(pixels: np.ndarray, content_type: str = "image/bmp", filename: str = "slip.bmp") -> UploadedSlipImage:
    return UploadedSlipImage(content=encode(pixels), content_type=content_type, filename=filename)


def rgba_slip_image(pixels: np.ndarray, alpha: np.ndarray) -> UploadedSlipImage:
    """Uncompressed PNG with an alpha channel, so it clears the file-size floor."""
    rgba = np.dstack([pixels, alpha.astype(np.uint8)])
    ok, buffer = cv2.imencode(".png", rgba, [cv2.IMWRITE_PNG_COMPRESSION, 0])
    assert ok
    return UploadedSlipImage(content=buffer.tobytes(), content_type="image/png", filename="slip.png")


class RecordingDecoder:
    """QR decoder double: remembers every buffer size and answers via ``hit``."""

    available = True

    def __init__(self, hit: Callable[[int, int], bool] = lambda w, h: False, text: str = "QR"):
        self.hit = hit
        self.text = text
        self.calls: List[Tuple[int, int]] = []

    def decode(self, pixels, width, height):
        assert pixels.shape[:2] == (height, width)
        self.calls.append((width, height))
        return self.text if self.hit(width, height) else None


@pytest.fixture
def settings() -> Settings:
    return Settings(backend_base_url="http://bakery.test", get_retries=2, retry_backoff=0)


@pytest.fixture
def always_qr_authenticator(settings) -> SlipAuthenticator:
    return SlipAuthenticator(RecordingDecoder(hit=lambda w, h: True), settings)


# ==================== backend double ====================

def _order(order_id: int, status: str = "pending", payment: str = "pending", email: str = "ploy@example.com",
           name: str = "Ploy") -> Dict[str, Any]:
    return {
        "id": order_id,
        "email": email,
        "subtotal": 240,
        "shipping": 0,
        "total": 240,
        "paymentMethod": "qr_promptpay",
        "paymentStatus": payment,
        "orderStatus": status,
        "receiverName": name,
        "receiverPhone": "0812345678",
        "receiverAddress": "99 Sukhumvit Rd, Bangkok",
        "note": "",
        "slipImage": "/uploads/slips/1.png",
        "createdAt": "2026-10-01T09:30:00.000Z",
    }


class FakeBakeryBackend:
    """In-memory stand-in for the bakery REST backend behind ``httpx.MockTransport``."""

    def __init__(self):
        self.orders: Dict[int, Dict[str, Any]] = {
            1: _order(1),
            2: _order(2, "confirmed", "paid"),
            3: _order(3, "preparing", "paid", email="nok@example.com", name="Nok"),
            4: _order(4, "delivered", "paid"),
        }
        self.items: Dict[int, List[Dict[str, Any]]] = {
            oid: [
                {"id": oid * 10, "productId": 7, "productName": "Butter Croissant", "price": 60, "quantity": 2},
                {"id": oid * 10 + 1, "productId": 9, "productName": "Thai Tea Cake", "price": 120, "quantity": 1},
            ]
            for oid in self.orders
        }
        self.stock: Dict[int, int] = {7: 10, 9: 5}
        self.cart: List[Dict[str, Any]] = [
            {"productId": 7, "productName": "Butter Croissant", "price": 60, "quantity": 2},
            {"productId": 9, "productName": "Thai Tea Cake", "price": 120, "quantity": 1},
        ]
        self.requests: List[Tuple[str, str]] = []
        self.bodies: List[Any] = []
        self.auth_headers: List[Optional[str]] = []
        self.reject_status_updates: Optional[str] = None
        self.promptpay_down = False
        self.down = False

    def clear_log(self) -> None:
        self.requests.clear()
        self.bodies.clear()
        self.auth_headers.clear()

    def calls(self, method: str, path: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p == path)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _detail(self, oid: int) -> httpx.Response:
        if oid not in self.orders:
            return httpx.Response(404, json={"success": False, "message": "order not found"})
        return httpx.Response(200, json={"success": True, "order": self.orders[oid], "items": self.items[oid]})

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))
        self.auth_headers.append(request.headers.get("authorization"))
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        body = None
        if request.headers.get("content-type", "").startswith("application/json"):
            body = json.loads(request.content)
        self.bodies.append(body)

        if method == "GET" and path == "/api/orders/all":
            return httpx.Response(200, json=list(self.orders.values()))
        if m := re.fullmatch(r"/api/orders/user/(.+)", path):
            email = m.group(1)
            return httpx.Response(200, json=[o for o in self.orders.values() if o["email"] == email])
        if m := re.fullmatch(r"/api/orders/search/(\d+)", path):
            return self._detail(int(m.group(1)))
        if method == "GET" and (m := re.fullmatch(r"/api/orders/(\d+)", path)):
            return self._detail(int(m.group(1)))
        if method == "PUT" and (m := re.fullmatch(r"/api/orders/(\d+)/status", path)):
            if self.reject_status_updates is not None:
                reply = {"success": False}
                if self.reject_status_updates:
                    reply["message"] = self.reject_status_updates
                return httpx.Response(400, json=reply)
            order = self.orders[int(m.group(1))]
            order["orderStatus"] = body["orderStatus"]
            if "paymentStatus" in body:
                order["paymentStatus"] = body["paymentStatus"]
            return httpx.Response(200, json={"success": True})
        if method == "PUT" and (m := re.fullmatch(r"/api/orders/(\d+)/cancel", path)):
            oid = int(m.group(1))
            self.orders[oid]["orderStatus"] = "cancelled"
            for item in self.items[oid]:
                self.stock[item["productId"]] += item["quantity"]
            return httpx.Response(200, json={"success": True, "message": "stock returned"})
        if method == "POST" and path == "/api/slip/upload":
            assert request.headers["content-type"].startswith("multipart/form-data")
            return httpx.Response(200, json={"success": True, "path": "/uploads/slips/new.bmp"})
        if method == "POST" and path == "/api/orders":
            oid = max(self.orders) + 1
            self.orders[oid] = {
                **_order(oid, "pending", body["paymentStatus"], email=body["email"]),
                "paymentMethod": body["paymentMethod"],
                "slipImage": body["slipImage"],
                "subtotal": body["subtotal"],
                "total": body["total"],
            }
            self.items[oid] = [dict(item, id=oid * 10 + i) for i, item in enumerate(body["items"])]
            return httpx.Response(200, json={"success": True, "orderId": oid})
        if method == "GET" and path == "/api/cart":
            return httpx.Response(200, json={"items": self.cart})
        if method == "DELETE" and path == "/api/cart/clear":
            self.cart = []
            return httpx.Response(200, json={"success": True})
        if method == "POST" and path == "/api/payment/card/charge":
            if body["cardNumber"] == "4000000000000002":
                return httpx.Response(402, json={"success": False, "message": "card declined"})
            return httpx.Response(200, json={"success": True, "paymentId": "ch_001", "cardLast4": body["cardNumber"][-4:]})
        if method == "POST" and path == "/api/payment/promptpay/generate":
            if self.promptpay_down:
                return httpx.Response(503, json={"success": False})
            return httpx.Response(200, json={"success": True, "qrCodeBase64": "iVBORw0KGgo="})
        return httpx.Response(404, json={"success": False, "message": "not found"})


@pytest.fixture
def fake_backend() -> FakeBakeryBackend:
    return FakeBakeryBackend()


@pytest.fixture
async def backend(settings, fake_backend):
    session = StaticSessionProvider(token="tok", user={"email": "ploy@example.com"})
    async with BackendClient(settings, session=session, transport=fake_backend.transport()) as client:
        yield client
