"""Commerce API package."""

from commerce.api.errors import register_error_handlers
from commerce.api.routes import cart_router, order_router, payment_router, product_router, tracking_router

__all__ = [
    "product_router",
    "cart_router",
    "order_router",
    "payment_router",
    "tracking_router",
    "register_error_handlers",
]
