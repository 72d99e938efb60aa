"""
Unit tests for ProductRepository

These tests validate repository logic without requiring a database connection.

Author: TM3
Date: 2025-11-09
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from psycopg2.errors import UniqueViolation
from psycopg2.extras import Json

from buysell.core.exceptions import ConflictError
from buysell.domain.product import Product
from buysell.repositories.product_repository import ProductRepository


def product_row(**overrides) -> dict:
    row = {
        'id': 100,
        'seller_id': 2,
        'category_id': 5,
        'name': 'Solar Lamp',
        'slug': 'solar-lamp',
        'sku': 'HOM-SOLAR1',
        'description': 'Charges in four hours',
        'short_description': None,
        'images': ['https://cdn.example/lamp.jpg'],
        'tags': ['solar', 'lighting'],
        'weight': None,
        'price': Decimal('10000.00'),
        'compare_at_price': Decimal('12500.00'),
        'currency': 'XOF',
        'quantity': 3,
        'track_quantity': True,
        'low_stock_threshold': 5,
        'is_published': True,
        'is_available': True,
        'view_count': 41,
        'rating': Decimal('4.50'),
        'review_count': 2,
        'category_name': 'Home',
        'seller_name': 'Awa Market',
        'created_at': datetime.now(),
        'updated_at': None
    }
    row.update(overrides)
    return row


@pytest.fixture
def db():
    """Patched connection whose cursor the test scripts"""
    with patch('buysell.repositories.product_repository.get_db_connection_dict') as mock_get_conn:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        yield mock_conn, mock_cursor


class TestProductRepository:
    """Test ProductRepository methods"""

    def test_find_by_id_returns_product(self, db):
        # Arrange
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.return_value = product_row()

        # Act
        product = ProductRepository().find_by_id(100)

        # Assert
        assert isinstance(product, Product)
        assert product.slug == 'solar-lamp'
        assert product.seller_name == 'Awa Market'
        assert product.is_low_stock is True
        assert product.discount_percentage == 20

        mock_cursor.execute.assert_called_once()
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    def test_find_by_id_returns_none_when_not_found(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = None

        assert ProductRepository().find_by_id(999) is None

    def test_find_by_ids_skips_query_for_empty_list(self, db):
        mock_conn, _ = db

        assert ProductRepository().find_by_ids([]) == []
        mock_conn.cursor.assert_not_called()

    def test_find_all_only_lists_published_products(self, db):
        # Arrange
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'total': 1}
        mock_cursor.fetchall.return_value = [product_row()]

        # Act
        products, total = ProductRepository().find_all(
            search='lamp', category_id=5, min_price=Decimal('5000'),
            in_stock=True, sort_by='price', sort_order='asc', limit=10, offset=20
        )

        # Assert
        assert total == 1
        assert products[0].id == 100

        count_sql, count_params = mock_cursor.execute.call_args_list[0][0]
        assert 'p.is_published AND p.is_available' in count_sql
        assert '(NOT p.track_quantity OR p.quantity > 0)' in count_sql
        assert count_params == ['%lamp%', '%lamp%', '%lamp%', 5, Decimal('5000')]

        list_sql, list_params = mock_cursor.execute.call_args_list[1][0]
        assert 'ORDER BY p.price ASC' in list_sql
        assert list_params[-2:] == [10, 20]

    def test_find_all_ignores_unknown_sort_column(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'total': 0}
        mock_cursor.fetchall.return_value = []

        ProductRepository().find_all(sort_by='price; DROP TABLE products')

        list_sql = mock_cursor.execute.call_args_list[1][0][0]
        assert 'ORDER BY p.created_at DESC' in list_sql
        assert 'DROP' not in list_sql

    def test_find_by_seller_drafts(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = {'total': 0}
        mock_cursor.fetchall.return_value = []

        ProductRepository().find_by_seller(2, status='draft')

        count_sql, params = mock_cursor.execute.call_args_list[0][0]
        assert 'NOT p.is_published' in count_sql
        assert params == [2]

    def test_create_wraps_json_columns(self, db):
        # Arrange
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.side_effect = [{'id': 100}, product_row()]

        # Act
        product = ProductRepository().create(2, 'solar-lamp', {
            'name': 'Solar Lamp', 'price': Decimal('10000'), 'images': [], 'tags': ['solar']
        })

        # Assert
        assert product.id == 100
        insert_params = mock_cursor.execute.call_args_list[0][0][1]
        assert insert_params[:4] == [2, 'solar-lamp', 'Solar Lamp', Decimal('10000')]
        assert isinstance(insert_params[4], Json)
        assert isinstance(insert_params[5], Json)
        mock_conn.commit.assert_called_once()

    def test_create_duplicate_slug_raises_conflict(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.execute.side_effect = UniqueViolation()

        with pytest.raises(ConflictError):
            ProductRepository().create(2, 'solar-lamp', {'name': 'Solar Lamp'})

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    def test_update_without_fields_just_reads(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = product_row()

        ProductRepository().update(100, {})

        sql = mock_cursor.execute.call_args[0][0]
        assert 'UPDATE' not in sql

    def test_update_missing_product_returns_none(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = None

        assert ProductRepository().update(100, {'price': Decimal('9000')}) is None

    def test_soft_delete_unpublishes(self, db):
        mock_conn, mock_cursor = db
        mock_cursor.fetchone.return_value = {'id': 100}

        assert ProductRepository().soft_delete(100) is True

        sql = mock_cursor.execute.call_args[0][0]
        assert 'is_published = FALSE' in sql
        assert 'is_available = FALSE' in sql
        mock_conn.commit.assert_called_once()

    def test_slug_exists_excluding_self(self, db):
        _, mock_cursor = db
        mock_cursor.fetchone.return_value = None

        assert ProductRepository().slug_exists('solar-lamp', exclude_id=100) is False
        assert mock_cursor.execute.call_args[0][1] == ('solar-lamp', 100)
