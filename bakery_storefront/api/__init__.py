"""API router aggregator."""

from fastapi import APIRouter

from .checkout import router as checkout_router
from .orders import admin_router as admin_orders_router
from .orders import router as orders_router
from .slip import router as slip_router

api_router = APIRouter()
api_router.include_router(checkout_router, prefix="/api", tags=["checkout"])
api_router.include_router(slip_router, prefix="/api", tags=["slip"])
api_router.include_router(orders_router, prefix="/api")
api_router.include_router(admin_orders_router, prefix="/api")

__all__ = ["api_router"]
