"""
Unit tests for OrderRepository

Checkout and cancellation are single transactions; these tests check
that every failure path rolls back and that the happy path commits once.
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from buysell.core.exceptions import BadRequestError, ConflictError
from buysell.repositories.order_repository import OrderRepository

ORDER_ROW = {
    'id': 500,
    'order_number': 'BS-1731153600000-ABC123',
    'user_id': 1,
    'status': 'pending',
    'payment_status': 'pending',
    'payment_method': 'orange_money',
    'subtotal': Decimal('20000'),
    'shipping_cost': Decimal('3000'),
    'tax_amount': Decimal('3600'),
    'total_amount': Decimal('26600'),
    'items_count': 2,
    'shipping_address': {'city': 'Abidjan', 'country': 'CI'},
    'created_at': datetime(2025, 11, 9, 12, 0),
}

ITEM_ROW = {
    'id': 1,
    'order_id': 500,
    'product_id': 100,
    'seller_id': 2,
    'product_name': 'Solar Lamp',
    'product_sku': 'HOM-SOLAR1',
    'product_image': None,
    'quantity': 2,
    'unit_price': Decimal('10000'),
    'total_price': Decimal('20000'),
}

LINE = {
    'product_id': 100, 'seller_id': 2, 'product_name': 'Solar Lamp', 'product_sku': 'HOM-SOLAR1',
    'product_image': None, 'quantity': 2, 'unit_price': Decimal('10000'), 'total_price': Decimal('20000'),
}


@pytest.fixture
def db():
    with patch('buysell.repositories.order_repository.get_db_connection_dict') as mock_get_conn:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        yield mock_conn, mock_cursor


def order_data() -> dict:
    return {
        'order_number': ORDER_ROW['order_number'],
        'user_id': 1,
        'subtotal': Decimal('20000'),
        'total_amount': Decimal('26600'),
        'shipping_address': {'city': 'Abidjan', 'country': 'CI'},
    }


class TestCreateWithItems:

    def test_commits_order_and_reports_low_stock(self, db):
        # Arrange
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.side_effect = [
            {'id': 500},
            {'id': 100, 'name': 'Solar Lamp', 'seller_id': 2, 'quantity': 3,
             'track_quantity': True, 'low_stock_threshold': 5},
            {'id': 7},
            ORDER_ROW,
        ]
        mock_cursor.fetchall.return_value = [ITEM_ROW]

        # Act
        order, low_stock = OrderRepository().create_with_items(
            order_data(), [LINE], coupon_id=7, clear_cart=True
        )

        # Assert
        assert order.id == 500
        assert order.items[0].product_name == 'Solar Lamp'
        assert low_stock == [{'id': 100, 'name': 'Solar Lamp', 'seller_id': 2, 'quantity': 3,
                              'track_quantity': True, 'low_stock_threshold': 5}]

        statements = [c[0][0] for c in mock_cursor.execute.call_args_list]
        assert any('quantity >= %s' in sql for sql in statements)
        assert any('UPDATE coupons' in sql for sql in statements)
        assert any('UPDATE cart_items' in sql for sql in statements)
        mock_conn.commit.assert_called_once()
        mock_conn.rollback.assert_not_called()

    def test_stock_race_rolls_back(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.side_effect = [{'id': 500}, None]

        with pytest.raises(ConflictError, match='Insufficient stock'):
            OrderRepository().create_with_items(order_data(), [LINE])

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    def test_exhausted_coupon_rolls_back(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.side_effect = [
            {'id': 500},
            {'id': 100, 'name': 'Solar Lamp', 'seller_id': 2, 'quantity': 8,
             'track_quantity': True, 'low_stock_threshold': 5},
            None,
        ]

        with pytest.raises(BadRequestError, match='usage limit'):
            OrderRepository().create_with_items(order_data(), [LINE], coupon_id=7)

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()


class TestReads:

    def test_find_by_id_loads_items(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = ORDER_ROW
        mock_cursor.fetchall.return_value = [ITEM_ROW]

        order = OrderRepository().find_by_id(500)

        assert order.order_number == ORDER_ROW['order_number']
        assert len(order.items) == 1
        assert mock_cursor.execute.call_count == 2

    def test_find_by_id_without_items(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = ORDER_ROW

        order = OrderRepository().find_by_id(500, include_items=False)

        assert order.items == []
        assert mock_cursor.execute.call_count == 1

    def test_find_delivered_purchase(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'id': 480}

        assert OrderRepository().find_delivered_purchase(1, 100) == 480
        assert "o.status = 'delivered'" in mock_cursor.execute.call_args[0][0]


class TestStateChanges:

    def test_cancel_restores_stock(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.side_effect = [{'id': 500}, {**ORDER_ROW, 'status': 'cancelled'}]
        mock_cursor.fetchall.return_value = []

        order = OrderRepository().cancel(500, 'Changed my mind')

        assert order.status == 'cancelled'
        restock_sql = mock_cursor.execute.call_args_list[1][0][0]
        assert 'quantity = p.quantity + s.qty' in restock_sql
        mock_conn.commit.assert_called_once()

    def test_cancel_lost_race_returns_none(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.return_value = None

        assert OrderRepository().cancel(500) is None

        assert mock_cursor.execute.call_count == 1
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()

    def test_update_status_stamps_shipped_at(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.side_effect = [{'id': 500}, {**ORDER_ROW, 'status': 'shipped'}]
        mock_cursor.fetchall.return_value = []

        OrderRepository().update_status(500, 'shipped', tracking_number='TRK-1')

        sql, values = mock_cursor.execute.call_args_list[0][0]
        assert 'shipped_at = COALESCE(shipped_at, NOW())' in sql
        assert values == ['shipped', 'TRK-1', 500]

    def test_mark_paid_confirms_pending_order(self, db):
        _, mock_cursor = db

        OrderRepository().update_payment(500, payment_status='paid', mark_paid=True)

        sql, values = mock_cursor.execute.call_args[0]
        assert "CASE WHEN status = 'pending' THEN 'confirmed' ELSE status END" in sql
        assert values == ['paid', 500]

    def test_refund_status_follows_committed_payment(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.return_value = {'payment_status': 'refunded'}

        result = OrderRepository().sync_refund_status(700)

        assert result == 'refunded'
        sql, params = mock_cursor.execute.call_args[0]
        assert 'FROM payments p' in sql
        assert "WHEN p.status = 'fully_refunded'" in sql
        assert params == (700,)
        mock_conn.commit.assert_called_once()

    def test_refund_status_ignores_unrefunded_payment(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = None

        assert OrderRepository().sync_refund_status(700) is None
