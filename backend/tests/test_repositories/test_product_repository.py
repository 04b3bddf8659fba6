"""
Unit tests for ProductRepository

These tests validate repository logic without requiring a database connection.

Author: TM3
Date: 2025-10-17
Updated: 2025-11-21 (variants, slugs)
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

from app.domain.product import Product
from app.repositories.product_repository import ProductRepository


class TestProductRepository:
    """Test ProductRepository methods"""

    @patch('app.core.database.get_db_connection_dict')
    def test_find_by_id_returns_product(self, mock_get_conn, sample_product_row):
        """Test find_by_id returns a Product with variants and groups"""
        # Arrange: Mock database connection
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor

        mock_cursor.fetchone.return_value = sample_product_row
        mock_cursor.fetchall.side_effect = [
            # variants
            [
                {'id': 10, 'product_id': 1, 'sku': 'BOOT-42', 'price': Decimal('110.00'), 'stock': 3,
                 'options': {'Size': '42'}},
                {'id': 11, 'product_id': 1, 'sku': 'BOOT-43', 'price': Decimal('130.00'), 'stock': 0,
                 'options': {'Size': '43'}},
            ],
            # groups
            [{'id': 4, 'name': 'Size', 'group_values': ['42', '43']}],
        ]

        # Act
        product = ProductRepository().find_by_id(1)

        # Assert
        assert isinstance(product, Product)
        assert product.slug == 'leather-boot'
        assert product.category.slug == 'shoes'
        assert product.brand.name == 'Acme'
        assert product.price == Decimal('110.00')  # lowest variant price
        assert product.stock == 3
        assert product.variant_groups[0].values == ['42', '43']
        assert product.variants[0].label == '42'

        # Own connection is committed and closed
        mock_conn.commit.assert_called_once()
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    def test_find_by_id_returns_none_when_not_found(self, mock_cursor):
        mock_cursor.fetchone.return_value = None

        assert ProductRepository().find_by_id(999, cursor=mock_cursor) is None
        mock_cursor.execute.assert_called_once()

    def test_find_all_builds_filters(self, mock_cursor, sample_product_row):
        # Arrange
        mock_cursor.fetchone.return_value = {'total': 1}
        mock_cursor.fetchall.side_effect = [[sample_product_row], []]

        # Act
        products, total = ProductRepository().find_all(
            category_id=2, search='boot', published=True,
            sort_field='base_price', sort_order='asc', limit=5, offset=10, cursor=mock_cursor,
        )

        # Assert
        assert total == 1
        assert products[0].price == Decimal('120.00')  # base price without variants
        count_sql, count_params = mock_cursor.execute.call_args_list[0][0]
        assert 'p.category_id = %s' in count_sql
        assert count_params == [2, '%boot%', '%boot%', True]
        list_sql, list_params = mock_cursor.execute.call_args_list[1][0]
        assert 'ORDER BY p.base_price ASC' in list_sql
        assert list_params[-2:] == [5, 10]

    def test_unknown_sort_field_falls_back_to_created_at(self, mock_cursor):
        mock_cursor.fetchone.return_value = {'total': 0}
        mock_cursor.fetchall.return_value = []

        ProductRepository().find_all(sort_field='password; DROP TABLE', cursor=mock_cursor)

        list_sql = mock_cursor.execute.call_args_list[1][0][0]
        assert 'ORDER BY p.created_at DESC' in list_sql

    def test_update_without_fields_checks_existence(self, mock_cursor):
        mock_cursor.fetchone.return_value = {'?column?': 1}

        assert ProductRepository().update(1, {'unknown': 'x'}, cursor=mock_cursor) is True
        assert 'UPDATE' not in mock_cursor.execute.call_args[0][0]

    def test_replace_variants_links_values(self, mock_cursor):
        # group id, value ids, then variant ids
        mock_cursor.fetchone.side_effect = [{'id': 1}, {'id': 11}, {'id': 12}, {'id': 100}, {'id': 101}]

        ProductRepository().replace_variants(
            5,
            [('Size', ['S', 'M'])],
            [
                {'options': {'Size': 'S'}, 'price': Decimal('10'), 'stock': 1},
                {'options': {'Size': 'M'}, 'price': Decimal('10'), 'stock': 2},
            ],
            cursor=mock_cursor,
        )

        link_calls = [
            c[0][1] for c in mock_cursor.execute.call_args_list
            if 'INSERT INTO variant_value_links' in c[0][0]
        ]
        assert link_calls == [(100, 11), (101, 12)]
