"""Storefront API package."""

from storefront.api.errors import register_storefront_exception_handlers
from storefront.api.routes import admin_router, cart_router, checkout_router, order_router, payment_router

__all__ = [
    "admin_router",
    "cart_router",
    "checkout_router",
    "order_router",
    "payment_router",
    "register_storefront_exception_handlers",
]
