"""
Bakery storefront core
Slip checks for QR PromptPay checkout and the order lifecycle behind the admin console.

Quickstart::

    import asyncio
    from bakery_storefront import SlipAuthenticator, UploadedSlipImage

    async def main():
        slip = UploadedSlipImage.from_path("slip.jpg")
        result = await SlipAuthenticator().validate(slip)
        print(result.valid, result.reason)

    asyncio.run(main())
"""

from .backend import BackendAPIError, BackendClient, BackendResult
from .config import Settings, get_settings, load_env
from .errors import CheckoutError, OrderBusy, TransitionNotAllowed
from .models import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SlipValidationResult,
    UploadedSlipImage,
)
from .orders import OrderAction, OrderLifecycle, available_actions
from .session import SessionProvider, StaticSessionProvider
from .slip import SlipAuthenticator, load_qr_decoder

load_env()

__version__ = "0.1.0"

__all__ = [
    "BackendAPIError",
    "BackendClient",
    "BackendResult",
    "CheckoutError",
    "Order",
    "OrderAction",
    "OrderBusy",
    "OrderItem",
    "OrderLifecycle",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "SessionProvider",
    "Settings",
    "SlipAuthenticator",
    "SlipValidationResult",
    "StaticSessionProvider",
    "TransitionNotAllowed",
    "UploadedSlipImage",
    "available_actions",
    "get_settings",
    "load_env",
    "load_qr_decoder",
    "__version__",
]
