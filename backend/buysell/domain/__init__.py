"""
Domain Layer - Business Entities

Pydantic models for marketplace entities plus their create/update schemas.

Author: TM3
Date: 2025-11-03
"""
from buysell.domain.user import User, Address
from buysell.domain.category import Category
from buysell.domain.product import Product
from buysell.domain.cart import CartItem
from buysell.domain.order import Order, OrderItem, Coupon
from buysell.domain.payment import Payment, PaymentRefund, ProviderResult
from buysell.domain.review import Review, Notification

__all__ = [
    'User',
    'Address',
    'Category',
    'Product',
    'CartItem',
    'Order',
    'OrderItem',
    'Coupon',
    'Payment',
    'PaymentRefund',
    'ProviderResult',
    'Review',
    'Notification',
]
