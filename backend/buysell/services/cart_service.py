"""
Cart Service - the user's shopping cart

Author: TM3
Date: 2025-11-05
"""
import logging

from buysell.core.constants import MAX_CART_ITEMS
from buysell.core.exceptions import BadRequestError, NotFoundError
from buysell.domain.cart import CartItem, summarize_cart
from buysell.domain.product import Product
from buysell.repositories.cart_repository import CartRepository
from buysell.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class CartService:

    def __init__(self, cart_repo: CartRepository = None, product_repo: ProductRepository = None):
        self.cart_repo = cart_repo or CartRepository()
        self.product_repo = product_repo or ProductRepository()

    def get_cart(self, user_id: int) -> dict:
        items = self.cart_repo.find_active(user_id)
        return {
            'items': [item.to_dict() for item in items],
            'summary': summarize_cart(items),
        }

    @staticmethod
    def _check_stock(product: Product, quantity: int) -> None:
        if not product.has_stock_for(quantity):
            raise BadRequestError(
                f"Insufficient stock for {product.name}: {product.quantity} available"
            )

    def add_item(self, user_id: int, product_id: int, quantity: int) -> CartItem:
        """
        Add a product; an existing active line for it is merged

        Raises:
            NotFoundError: product missing
            BadRequestError: not for sale, not enough stock, cart full
        """
        product = self.product_repo.find_by_id(product_id)
        if not product:
            raise NotFoundError("Product not found")
        if not (product.is_published and product.is_available):
            raise BadRequestError("Product is not available for purchase")

        existing = self.cart_repo.find_by_product(user_id, product_id)
        if existing:
            new_quantity = existing.quantity + quantity
            self._check_stock(product, new_quantity)
            self.cart_repo.set_quantity(existing.id, new_quantity)
            item_id = existing.id
        else:
            if self.cart_repo.count_lines(user_id) >= MAX_CART_ITEMS:
                raise BadRequestError(f"Cart cannot hold more than {MAX_CART_ITEMS} different products")
            self._check_stock(product, quantity)
            item_id = self.cart_repo.add(user_id, product_id, quantity)

        return self.cart_repo.find_item(item_id, user_id)

    def update_item(self, user_id: int, item_id: int, quantity: int) -> CartItem:
        item = self.cart_repo.find_item(item_id, user_id)
        if not item:
            raise NotFoundError("Cart item not found")

        product = self.product_repo.find_by_id(item.product_id)
        if not product or not (product.is_published and product.is_available):
            raise BadRequestError("Product is not available for purchase")
        self._check_stock(product, quantity)

        self.cart_repo.set_quantity(item_id, quantity)
        return self.cart_repo.find_item(item_id, user_id)

    def remove_item(self, user_id: int, item_id: int) -> None:
        if not self.cart_repo.deactivate(item_id, user_id):
            raise NotFoundError("Cart item not found")

    def clear(self, user_id: int) -> int:
        return self.cart_repo.clear(user_id)

    def count(self, user_id: int) -> int:
        return self.cart_repo.total_quantity(user_id)
