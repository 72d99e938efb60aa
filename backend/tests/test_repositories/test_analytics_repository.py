"""
Unit tests for AnalyticsRepository
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from buysell.repositories.analytics_repository import AnalyticsRepository

START = datetime(2025, 10, 10, tzinfo=timezone.utc)
END = datetime(2025, 11, 9, tzinfo=timezone.utc)


@pytest.fixture
def db():
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    with patch('buysell.repositories.analytics_repository.get_db_connection_dict', return_value=mock_conn):
        yield mock_conn, mock_cursor


@pytest.fixture
def repo():
    return AnalyticsRepository()


class TestRevenue:

    def test_platform_revenue_reads_orders(self, repo, db):
        # Arrange
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.return_value = {'total': Decimal('53200.00'), 'orders': 2}

        # Act
        result = repo.get_revenue(START, END)

        # Assert
        assert result == {'total': 53200.0, 'orders': 2}
        sql, params = mock_cursor.execute.call_args[0]
        assert 'FROM orders' in sql
        assert 'order_items' not in sql
        assert params == (START, END, ['confirmed', 'processing', 'shipped', 'delivered'])
        mock_conn.close.assert_called_once()

    def test_seller_revenue_sums_own_lines(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'total': Decimal('20000'), 'orders': 1}

        repo.get_revenue(START, END, seller_id=2)

        sql, params = mock_cursor.execute.call_args[0]
        assert 'SUM(oi.total_price)' in sql
        assert 'oi.seller_id = %s' in sql
        assert params[0] == 2


class TestCounts:

    def test_order_counts(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'total': 10, 'completed': 4, 'cancelled': 1, 'items': 23}

        assert repo.get_order_counts(START, END) == {'total': 10, 'completed': 4, 'cancelled': 1, 'items': 23}

    def test_user_counts_use_last_login(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'new_users': 7, 'active_users': 30, 'new_sellers': 2}

        result = repo.get_user_counts(START, END)

        assert result == {'new_users': 7, 'active_users': 30, 'new_sellers': 2}
        assert 'last_login_at' in mock_cursor.execute.call_args[0][0]


class TestBreakdowns:

    def test_top_products_limit_and_seller_filter(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchall.return_value = [{
            'product_id': 100, 'name': 'Solar Lamp', 'slug': 'solar-lamp',
            'units_sold': 12, 'revenue': Decimal('120000'), 'orders': 5,
        }]

        result = repo.get_top_products(START, END, seller_id=2, limit=5)

        assert result == [{
            'product_id': 100, 'name': 'Solar Lamp', 'slug': 'solar-lamp',
            'units_sold': 12, 'revenue': 120000.0, 'orders': 5,
        }]
        sql, params = mock_cursor.execute.call_args[0]
        assert 'AND oi.seller_id = %s' in sql
        assert params[-2:] == [2, 5]

    def test_top_products_platform_has_no_seller_filter(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchall.return_value = []

        repo.get_top_products(START, END)

        sql, params = mock_cursor.execute.call_args[0]
        assert 'oi.seller_id' not in sql
        assert params[-1] == 10

    def test_sales_by_category(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchall.return_value = [
            {'category_id': 5, 'category': 'Home', 'units_sold': 12, 'revenue': Decimal('120000')},
            {'category_id': None, 'category': 'Uncategorized', 'units_sold': 1, 'revenue': Decimal('500')},
        ]

        result = repo.get_sales_by_category(START, END)

        assert result[0]['revenue'] == 120000.0
        assert result[1]['category'] == 'Uncategorized'

    def test_daily_sales(self, repo, db):
        _, mock_cursor = db
        mock_cursor.fetchall.return_value = [
            {'day': date(2025, 11, 8), 'revenue': Decimal('26600'), 'orders': 1},
        ]

        result = repo.get_daily_sales(START, END)

        assert result == [{'day': date(2025, 11, 8), 'revenue': 26600.0, 'orders': 1}]
        assert "DATE_TRUNC('day', created_at)" in mock_cursor.execute.call_args[0][0]
