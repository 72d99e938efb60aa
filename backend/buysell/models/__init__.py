"""
Database table definitions (SQLAlchemy)

Importing this package registers every table on Base.metadata.
"""
from .user import User, Address
from .catalog import Category, Product, CartItem
from .order import Coupon, Order, OrderItem
from .payment import Payment, PaymentRefund, WebhookLog
from .engagement import Review, Notification, AdminAuditLog

__all__ = [
    "User",
    "Address",
    "Category",
    "Product",
    "CartItem",
    "Coupon",
    "Order",
    "OrderItem",
    "Payment",
    "PaymentRefund",
    "WebhookLog",
    "Review",
    "Notification",
    "AdminAuditLog",
]
