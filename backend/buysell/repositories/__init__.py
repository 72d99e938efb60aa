"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.

Author: TM3
Date: 2025-11-03
"""
from buysell.repositories.user_repository import UserRepository, AddressRepository
from buysell.repositories.category_repository import CategoryRepository
from buysell.repositories.product_repository import ProductRepository
from buysell.repositories.cart_repository import CartRepository
from buysell.repositories.coupon_repository import CouponRepository
from buysell.repositories.order_repository import OrderRepository
from buysell.repositories.payment_repository import PaymentRepository, WebhookLogRepository
from buysell.repositories.review_repository import ReviewRepository
from buysell.repositories.notification_repository import NotificationRepository
from buysell.repositories.admin_repository import AdminRepository

__all__ = [
    'UserRepository',
    'AddressRepository',
    'CategoryRepository',
    'ProductRepository',
    'CartRepository',
    'CouponRepository',
    'OrderRepository',
    'PaymentRepository',
    'WebhookLogRepository',
    'ReviewRepository',
    'NotificationRepository',
    'AdminRepository',
]
