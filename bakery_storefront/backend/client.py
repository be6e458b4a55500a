"""Async client for the bakery REST backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings, get_settings
from ..errors import UNREACHABLE_MESSAGE, BackendAPIError
from ..models import CardDetails, CartItem, Order, OrderDetail, OrderStatus, PaymentStatus, UploadedSlipImage
from ..session import SessionProvider

logger = logging.getLogger(__name__)


@dataclass
class BackendResult:
    """A ``{success, message?, ...}`` reply from the backend.

    ``success == False`` is an ordinary answer, not an error: the message is
    shown to the user verbatim.
    """

    success: bool
    message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "BackendResult":
        if not isinstance(payload, dict):
            return cls(success=False, message="unexpected response from server")
        return cls(
            success=bool(payload.get("success")),
            message=payload.get("message"),
            data=payload,
        )


class BackendClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the endpoints the storefront uses.

    GET requests are retried with exponential backoff on transport errors and
    5xx replies; no other method is ever retried, so an order is never
    created twice by this client.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        session: Optional[SessionProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            settings: Storefront settings; defaults to the cached environment settings
            session: Provides the bearer token attached to every request
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
            http_client: Pre-built client to reuse connections
        """
        self.settings = settings or get_settings()
        self.session = session
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.http_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ==================== plumbing ====================

    def _headers(self) -> Dict[str, str]:
        token = self.session.get_token() if self.session else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise BackendAPIError(
                status=response.status_code,
                message="unexpected response from server",
                details=response.text[:200],
            ) from exc

    async def _request(self, method: str, path: str, *, retry: bool = False, **kwargs: Any) -> httpx.Response:
        attempts = 1 + (self.settings.get_retries if retry else 0)
        last_error: Optional[BackendAPIError] = None

        for attempt in range(attempts):
            try:
                response = await self._client.request(method, path, headers=self._headers(), **kwargs)
            except httpx.HTTPError as exc:
                logger.warning(f"[backend] {method} {path} failed: {exc!r}")
                last_error = BackendAPIError(status=None, message=UNREACHABLE_MESSAGE, details=str(exc))
            else:
                if response.status_code < 500 or attempt == attempts - 1:
                    return response
                logger.warning(f"[backend] {method} {path} returned {response.status_code}")
                last_error = BackendAPIError(status=response.status_code, message=UNREACHABLE_MESSAGE)

            if attempt < attempts - 1:
                await asyncio.sleep(self.settings.retry_backoff * (2 ** attempt))

        assert last_error is not None
        raise last_error

    async def _get_json(self, path: str) -> Any:
        response = await self._request("GET", path, retry=True)
        return self._decode(response)

    async def _get_list(self, path: str) -> List[Dict[str, Any]]:
        response = await self._request("GET", path, retry=True)
        if not response.is_success:
            raise BackendAPIError(status=response.status_code, message=UNREACHABLE_MESSAGE)
        payload = self._decode(response)
        if isinstance(payload, dict):
            payload = payload.get("orders") or payload.get("items") or []
        return [entry for entry in payload if isinstance(entry, dict)]

    async def _send(self, method: str, path: str, **kwargs: Any) -> BackendResult:
        response = await self._request(method, path, **kwargs)
        return BackendResult.from_payload(self._decode(response))

    @staticmethod
    def _orders(entries: List[Dict[str, Any]]) -> List[Order]:
        orders = []
        for entry in entries:
            try:
                orders.append(Order.from_api(entry))
            except (KeyError, ValueError) as exc:
                logger.warning(f"[backend] skipping malformed order {entry.get('id')!r}: {exc}")
        return orders

    @staticmethod
    def _detail(payload: Any) -> Optional[OrderDetail]:
        result = BackendResult.from_payload(payload)
        if not result.success or not isinstance(result.data.get("order"), dict):
            return None
        try:
            return OrderDetail.from_api(result.data)
        except (KeyError, ValueError) as exc:
            raise BackendAPIError(status=None, message="unexpected response from server", details=str(exc)) from exc

    # ==================== slips and orders ====================

    async def upload_slip(self, image: UploadedSlipImage) -> BackendResult:
        """``POST /api/slip/upload``; on success ``data["path"]`` holds the stored path."""
        files = {"file": (image.filename, image.content, image.content_type or "application/octet-stream")}
        return await self._send("POST", "/api/slip/upload", files=files)

    async def create_order(self, payload: Dict[str, Any]) -> BackendResult:
        """``POST /api/orders``; never retried."""
        return await self._send("POST", "/api/orders", json=payload)

    async def update_order_status(
        self,
        order_id: int,
        order_status: OrderStatus,
        payment_status: Optional[PaymentStatus] = None,
    ) -> BackendResult:
        body: Dict[str, Any] = {"orderStatus": order_status.value}
        if payment_status is not None:
            body["paymentStatus"] = payment_status.value
        return await self._send("PUT", f"/api/orders/{order_id}/status", json=body)

    async def cancel_order(self, order_id: int) -> BackendResult:
        """Cancellation path; the backend returns the stock."""
        return await self._send("PUT", f"/api/orders/{order_id}/cancel")

    async def get_order(self, order_id: int) -> Optional[OrderDetail]:
        return self._detail(await self._get_json(f"/api/orders/{order_id}"))

    async def search_order(self, number: int) -> Optional[OrderDetail]:
        return self._detail(await self._get_json(f"/api/orders/search/{number}"))

    async def list_orders(self) -> List[Order]:
        return self._orders(await self._get_list("/api/orders/all"))

    async def list_user_orders(self, email: str) -> List[Order]:
        return self._orders(await self._get_list(f"/api/orders/user/{email}"))

    # ==================== cart and payment ====================

    async def get_cart(self) -> List[CartItem]:
        payload = await self._get_json("/api/cart")
        entries = payload.get("items") if isinstance(payload, dict) else None
        return [CartItem.from_api(entry) for entry in entries or [] if isinstance(entry, dict)]

    async def clear_cart(self) -> BackendResult:
        return await self._send("DELETE", "/api/cart/clear")

    async def charge_card(self, amount: float, card: CardDetails) -> BackendResult:
        """Mock card charge; never retried."""
        exp_month, _, exp_year = card.expiry.partition("/")
        body = {
            "amount": amount,
            "cardNumber": card.digits,
            "expMonth": exp_month,
            "expYear": "20" + exp_year,
            "cvc": card.cvc,
            "cardName": card.name,
        }
        return await self._send("POST", "/api/payment/card/charge", json=body)

    async def generate_promptpay(self, amount: float) -> Optional[str]:
        """Return the base64 PNG of a PromptPay QR for ``amount``, if the backend produced one."""
        result = await self._send("POST", "/api/payment/promptpay/generate", json={"amount": amount})
        if result.success and result.data.get("qrCodeBase64"):
            return str(result.data["qrCodeBase64"])
        return None


__all__ = ["BackendClient", "BackendResult"]
