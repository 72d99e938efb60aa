"""
Unit tests for OrderService

Repositories are replaced with MagicMocks; pricing runs for real.
"""
import re
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from buysell.core.auth import TokenUser
from buysell.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from buysell.domain.cart import CartItem
from buysell.domain.order import OrderCreate, OrderItemInput, OrderStatusUpdate
from buysell.services.order_service import OrderService, generate_order_number


@pytest.fixture
def repos():
    return {
        "order_repo": MagicMock(),
        "product_repo": MagicMock(),
        "cart_repo": MagicMock(),
        "address_repo": MagicMock(),
        "coupon_repo": MagicMock(),
        "notification_service": MagicMock(),
    }


@pytest.fixture
def service(repos):
    return OrderService(**repos)


class TestOrderNumber:

    def test_format(self):
        assert re.match(r"^BS-\d{13}-[A-Z0-9]{6}$", generate_order_number())

    def test_numbers_differ(self):
        assert generate_order_number() != generate_order_number()


class TestCreateOrder:

    def test_creates_order_from_explicit_items(self, service, repos, customer, make_address, make_product, make_order):
        """Prices are taken from the product, totals from the pricing rules"""
        # Arrange
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product()]
        repos["order_repo"].create_with_items.return_value = (make_order(), [])
        payload = OrderCreate(shipping_address_id=10, items=[OrderItemInput(product_id=100, quantity=2)])

        # Act
        order = service.create_order(customer, payload)

        # Assert
        order_data, items = repos["order_repo"].create_with_items.call_args[0]
        assert order_data["subtotal"] == Decimal("20000.00")
        assert order_data["shipping_cost"] == Decimal("3000.00")
        assert order_data["tax_amount"] == Decimal("3600.00")
        assert order_data["total_amount"] == Decimal("26600.00")
        assert order_data["status"] == "pending"
        assert order_data["payment_status"] == "pending"
        assert order_data["shipping_address"]["city"] == "Abidjan"
        assert items[0]["seller_id"] == 2
        assert items[0]["total_price"] == Decimal("20000.00")
        assert repos["order_repo"].create_with_items.call_args[1]["clear_cart"] is False
        assert order.id == 500
        repos["notification_service"].notify.assert_called_once()
        assert repos["notification_service"].notify.call_args[0][1] == "ORDER_CREATED"

    def test_duplicate_products_are_merged(self, service, repos, customer, make_address, make_product, make_order):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product()]
        repos["order_repo"].create_with_items.return_value = (make_order(), [])
        payload = OrderCreate(
            shipping_address_id=10,
            items=[OrderItemInput(product_id=100, quantity=1), OrderItemInput(product_id=100, quantity=2)],
        )

        service.create_order(customer, payload)

        _, items = repos["order_repo"].create_with_items.call_args[0]
        assert len(items) == 1
        assert items[0]["quantity"] == 3

    def test_uses_cart_when_items_omitted(self, service, repos, customer, make_address, make_product, make_order):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["cart_repo"].find_active.return_value = [
            CartItem(id=1, user_id=1, product_id=100, quantity=1)
        ]
        repos["product_repo"].find_by_ids.return_value = [make_product()]
        repos["order_repo"].create_with_items.return_value = (make_order(), [])

        service.create_order(customer, OrderCreate(shipping_address_id=10))

        assert repos["order_repo"].create_with_items.call_args[1]["clear_cart"] is True

    def test_empty_cart_rejected(self, service, repos, customer, make_address):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["cart_repo"].find_active.return_value = []

        with pytest.raises(BadRequestError, match="Cart is empty"):
            service.create_order(customer, OrderCreate(shipping_address_id=10))

    def test_foreign_address_not_found(self, service, repos, customer):
        repos["address_repo"].find_for_user.return_value = None
        payload = OrderCreate(shipping_address_id=10, items=[OrderItemInput(product_id=100, quantity=1)])

        with pytest.raises(NotFoundError):
            service.create_order(customer, payload)

    def test_unpublished_product_rejected(self, service, repos, customer, make_address, make_product):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product(is_published=False)]
        payload = OrderCreate(shipping_address_id=10, items=[OrderItemInput(product_id=100, quantity=1)])

        with pytest.raises(BadRequestError, match="not available"):
            service.create_order(customer, payload)

        repos["order_repo"].create_with_items.assert_not_called()

    def test_insufficient_stock_rejected(self, service, repos, customer, make_address, make_product):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product(quantity=1)]
        payload = OrderCreate(shipping_address_id=10, items=[OrderItemInput(product_id=100, quantity=2)])

        with pytest.raises(BadRequestError, match="Insufficient stock"):
            service.create_order(customer, payload)

    def test_untracked_stock_is_not_checked(self, service, repos, customer, make_address, make_product, make_order):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product(quantity=0, track_quantity=False)]
        repos["order_repo"].create_with_items.return_value = (make_order(), [])
        payload = OrderCreate(shipping_address_id=10, items=[OrderItemInput(product_id=100, quantity=5)])

        service.create_order(customer, payload)

        repos["order_repo"].create_with_items.assert_called_once()

    def test_unknown_coupon_rejected(self, service, repos, customer, make_address, make_product):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product()]
        repos["coupon_repo"].find_by_code.return_value = None
        payload = OrderCreate(
            shipping_address_id=10,
            items=[OrderItemInput(product_id=100, quantity=1)],
            coupon_code="NOPE",
        )

        with pytest.raises(BadRequestError, match="Invalid coupon"):
            service.create_order(customer, payload)

    def test_low_stock_alert_sent_to_seller(self, service, repos, customer, make_address, make_product, make_order):
        repos["address_repo"].find_for_user.return_value = make_address()
        repos["product_repo"].find_by_ids.return_value = [make_product()]
        repos["order_repo"].create_with_items.return_value = (
            make_order(),
            [{"id": 100, "seller_id": 2, "name": "Solar Lamp", "quantity": 3}],
        )
        payload = OrderCreate(shipping_address_id=10, items=[OrderItemInput(product_id=100, quantity=2)])

        service.create_order(customer, payload)

        types = [c[0][1] for c in repos["notification_service"].notify.call_args_list]
        assert types == ["ORDER_CREATED", "LOW_STOCK_ALERT"]
        assert repos["notification_service"].notify.call_args_list[1][0][0] == 2


class TestGetAndCancel:

    def test_other_customer_forbidden(self, service, repos, make_order):
        repos["order_repo"].find_by_id.return_value = make_order(user_id=1)

        with pytest.raises(ForbiddenError):
            service.get_order(500, TokenUser(id=3, email="x@example.com", role="customer"))

    def test_admin_can_read_any_order(self, service, repos, admin, make_order):
        repos["order_repo"].find_by_id.return_value = make_order(user_id=1)

        assert service.get_order(500, admin).id == 500

    def test_missing_order(self, service, repos, customer):
        repos["order_repo"].find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            service.get_order(500, customer)

    def test_cancel_pending_order(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order()
        repos["order_repo"].cancel.return_value = make_order(status="cancelled")

        order = service.cancel_order(500, customer, "Changed my mind")

        assert order.status == "cancelled"
        repos["order_repo"].cancel.assert_called_once_with(500, "Changed my mind")
        assert repos["notification_service"].notify.call_args[0][1] == "ORDER_CANCELLED"

    def test_cancel_shipped_order_rejected(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order(status="shipped")

        with pytest.raises(BadRequestError, match="cannot be cancelled"):
            service.cancel_order(500, customer)

        repos["order_repo"].cancel.assert_not_called()

    def test_cancel_lost_race(self, service, repos, customer, make_order):
        """Status changed between the read and the conditional update"""
        repos["order_repo"].find_by_id.return_value = make_order()
        repos["order_repo"].cancel.return_value = None

        with pytest.raises(BadRequestError):
            service.cancel_order(500, customer)


class TestUpdateStatus:

    def test_notifies_customer(self, service, repos, make_order):
        repos["order_repo"].update_status.return_value = make_order(status="shipped", tracking_number="TRK1")

        order = service.update_status(500, OrderStatusUpdate(status="shipped", tracking_number="TRK1"))

        assert order.status == "shipped"
        repos["order_repo"].update_status.assert_called_once_with(500, "shipped", None, "TRK1")
        assert repos["notification_service"].notify.call_args[0][1] == "ORDER_STATUS_UPDATED"

    def test_missing_order(self, service, repos):
        repos["order_repo"].update_status.return_value = None

        with pytest.raises(NotFoundError):
            service.update_status(500, OrderStatusUpdate(status="shipped"))
