"""
Order Service - checkout, order history and cancellation

Author: TM3
Date: 2025-11-05
"""
import logging
import secrets
import string
import time
from typing import Dict, List, Optional, Tuple

from buysell.core.auth import TokenUser
from buysell.core.config import settings
from buysell.core.constants import MAX_ORDER_ITEMS
from buysell.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from buysell.core.pagination import page_offset
from buysell.domain.order import Order, OrderCreate, OrderStatusUpdate
from buysell.repositories.cart_repository import CartRepository
from buysell.repositories.coupon_repository import CouponRepository
from buysell.repositories.order_repository import OrderRepository
from buysell.repositories.product_repository import ProductRepository
from buysell.repositories.user_repository import AddressRepository
from buysell.services import pricing_service
from buysell.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """BS-{unix_ms}-{6 uppercase alphanumerics}"""
    suffix = ''.join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(6))
    return f"BS-{int(time.time() * 1000)}-{suffix}"


class OrderService:
    """
    Business logic for orders

    Handles:
    - Checkout from explicit items or from the active cart
    - Pricing (shipping, tax, coupons)
    - Ownership checks and cancellation with stock restore
    - Status changes and their notifications
    """

    def __init__(self, order_repo: OrderRepository = None, product_repo: ProductRepository = None,
                 cart_repo: CartRepository = None, address_repo: AddressRepository = None,
                 coupon_repo: CouponRepository = None, notification_service: NotificationService = None):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.address_repo = address_repo or AddressRepository()
        self.coupon_repo = coupon_repo or CouponRepository()
        self.notifications = notification_service or NotificationService()

    def _requested_lines(self, user_id: int, payload: OrderCreate) -> Tuple[Dict[int, int], bool]:
        """
        {product_id: quantity} to order and whether it came from the cart

        Repeated products are merged into one line.
        """
        if payload.items is not None:
            source = [(item.product_id, item.quantity) for item in payload.items]
            from_cart = False
        else:
            cart = self.cart_repo.find_active(user_id)
            if not cart:
                raise BadRequestError("Cart is empty")
            source = [(item.product_id, item.quantity) for item in cart]
            from_cart = True

        lines: Dict[int, int] = {}
        for product_id, quantity in source:
            lines[product_id] = lines.get(product_id, 0) + quantity

        if len(lines) > MAX_ORDER_ITEMS:
            raise BadRequestError(f"An order cannot contain more than {MAX_ORDER_ITEMS} products")
        for quantity in lines.values():
            if quantity > MAX_ORDER_ITEMS:
                raise BadRequestError(f"Quantity per product cannot exceed {MAX_ORDER_ITEMS}")

        return lines, from_cart

    def create_order(self, user: TokenUser, payload: OrderCreate) -> Order:
        """
        Checkout

        Raises:
            NotFoundError: address not owned by the user
            BadRequestError: empty cart, product not for sale, stock, coupon
            ConflictError: stock taken by a concurrent checkout
        """
        shipping_address = self.address_repo.find_for_user(payload.shipping_address_id, user.id)
        if not shipping_address:
            raise NotFoundError("Shipping address not found")

        billing_address = shipping_address
        if payload.billing_address_id is not None:
            billing_address = self.address_repo.find_for_user(payload.billing_address_id, user.id)
            if not billing_address:
                raise NotFoundError("Billing address not found")

        lines, from_cart = self._requested_lines(user.id, payload)

        products = {product.id: product for product in self.product_repo.find_by_ids(list(lines))}
        items = []
        for product_id, quantity in lines.items():
            product = products.get(product_id)
            if not product:
                raise BadRequestError(f"Product {product_id} not found")
            if not (product.is_published and product.is_available):
                raise BadRequestError(f"Product \"{product.name}\" is not available")
            if not product.has_stock_for(quantity):
                raise BadRequestError(
                    f"Insufficient stock for \"{product.name}\": {product.quantity} available"
                )

            items.append({
                'product_id': product.id,
                'seller_id': product.seller_id,
                'product_name': product.name,
                'product_sku': product.sku,
                'product_image': product.images[0] if product.images else None,
                'quantity': quantity,
                'unit_price': product.price,
                'total_price': pricing_service.money(product.price * quantity),
            })

        coupon = None
        if payload.coupon_code:
            coupon = self.coupon_repo.find_by_code(payload.coupon_code)
            if not coupon:
                raise BadRequestError("Invalid coupon code")

        subtotal = pricing_service.calculate_subtotal(
            (item['unit_price'], item['quantity']) for item in items
        )
        totals = pricing_service.calculate_totals(
            subtotal, shipping_address.country, payload.shipping_method, coupon
        )

        order_data = {
            'order_number': generate_order_number(),
            'user_id': user.id,
            'status': 'pending',
            'payment_status': 'pending',
            'payment_method': payload.payment_method,
            'shipping_method': payload.shipping_method,
            **totals,
            'currency': settings.DEFAULT_CURRENCY,
            'items_count': sum(item['quantity'] for item in items),
            'coupon_id': coupon.id if coupon else None,
            'shipping_address': shipping_address.snapshot(),
            'billing_address': billing_address.snapshot(),
            'notes': payload.notes,
        }

        order, low_stock = self.order_repo.create_with_items(
            order_data,
            items,
            coupon_id=coupon.id if coupon else None,
            clear_cart=from_cart
        )
        logger.info(
            f"Order {order.order_number} created for user {user.id}: "
            f"{order.total_amount} {order.currency}"
        )

        self.notifications.notify(
            user.id,
            'ORDER_CREATED',
            'Order received',
            f"Your order {order.order_number} has been placed.",
            {'order_id': order.id, 'order_number': order.order_number},
        )
        for product in low_stock:
            if product.get('seller_id'):
                self.notifications.notify(
                    product['seller_id'],
                    'LOW_STOCK_ALERT',
                    'Low stock',
                    f"\"{product['name']}\" has {product['quantity']} unit(s) left.",
                    {'product_id': product['id'], 'quantity': product['quantity']},
                )

        return order

    def get_order(self, order_id: int, user: TokenUser) -> Order:
        order = self.order_repo.find_by_id(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if not (user.is_admin or order.is_owned_by(user.id)):
            raise ForbiddenError("You do not have access to this order")
        return order

    def list_my_orders(self, user: TokenUser, status: Optional[str] = None,
                       sort_by: str = 'created_at', sort_order: str = 'desc',
                       page: int = 1, limit: int = 10) -> Tuple[List[Order], int]:
        return self.order_repo.find_by_user(
            user.id, status, sort_by, sort_order, limit, page_offset(page, limit)
        )

    def seller_orders(self, user: TokenUser, status: Optional[str] = None,
                      page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
        return self.order_repo.find_by_seller(user.id, status, limit, page_offset(page, limit))

    def cancel_order(self, order_id: int, user: TokenUser, reason: Optional[str] = None) -> Order:
        """
        Cancel a pending or confirmed order and restore stock

        Raises:
            NotFoundError / ForbiddenError: see get_order
            BadRequestError: order already shipped, delivered, cancelled...
        """
        order = self.get_order(order_id, user)
        if not order.is_cancellable:
            raise BadRequestError(f"Order cannot be cancelled in status '{order.status}'")

        cancelled = self.order_repo.cancel(order_id, reason)
        if not cancelled:
            raise BadRequestError("Order can no longer be cancelled")

        logger.info(f"Order {order.order_number} cancelled by user {user.id}")
        self.notifications.notify(
            order.user_id,
            'ORDER_CANCELLED',
            'Order cancelled',
            f"Your order {order.order_number} has been cancelled.",
            {'order_id': order.id, 'reason': reason},
        )
        return cancelled

    def update_status(self, order_id: int, payload: OrderStatusUpdate) -> Order:
        order = self.order_repo.update_status(
            order_id, payload.status, payload.admin_notes, payload.tracking_number
        )
        if not order:
            raise NotFoundError("Order not found")

        logger.info(f"Order {order.order_number} moved to '{order.status}'")
        self.notifications.notify(
            order.user_id,
            'ORDER_STATUS_UPDATED',
            'Order update',
            f"Your order {order.order_number} is now {order.status}.",
            {'order_id': order.id, 'status': order.status, 'tracking_number': order.tracking_number},
        )
        return order

    def list_all(self, page: int = 1, limit: int = 20, **filters) -> Tuple[List[Order], int]:
        return self.order_repo.find_all(limit=limit, offset=page_offset(page, limit), **filters)
