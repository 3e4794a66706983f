# vpnstore/models/__init__.py
from .auth import User
from .catalog import Product
from .order import Order, Payment, ORDER_STATUSES, PAYMENT_STATUSES
from .settings import Settings

__all__ = [
    "User", "Product", "Order", "Payment", "Settings",
    "ORDER_STATUSES", "PAYMENT_STATUSES",
]
