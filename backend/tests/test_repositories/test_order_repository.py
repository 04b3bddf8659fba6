"""
Unit tests for OrderRepository

Author: TM3
Date: 2025-11-21
"""
from datetime import date
from decimal import Decimal

from app.domain.order_status import OrderStatus
from app.repositories.order_repository import OrderRepository


def order_row(**overrides):
    row = {
        'id': 40, 'order_number': 'ORD-123456-0001', 'user_id': 7,
        'subtotal': Decimal('60.00'), 'shipping_cost': Decimal('30.00'), 'tax_amount': Decimal('10.80'),
        'discount_amount': Decimal('0.00'), 'gift_card_amount': Decimal('0.00'), 'total': Decimal('100.80'),
        'status': 'PROCESSING', 'coupon_id': None, 'gift_card_id': None,
        'shipping_address_id': None, 'billing_address_id': None,
        'tracking_number': None, 'payment_method': 'card', 'notes': None, 'admin_notes': None,
        'created_at': None, 'updated_at': None,
        'customer_first_name': 'Jane', 'customer_last_name': 'Doe', 'customer_email': 'jane@example.com',
    }
    row.update(overrides)
    return row


class TestOrderRepository:

    def test_find_by_id_maps_customer_and_items(self, mock_cursor):
        # Arrange
        mock_cursor.fetchone.return_value = order_row()
        mock_cursor.fetchall.side_effect = [
            [{'id': 70, 'order_id': 40, 'product_id': 10, 'variant_id': None, 'product_name': 'Rain Jacket',
              'variant_label': None, 'quantity': 2, 'price': Decimal('30.00'), 'total': Decimal('60.00'),
              'product_slug': 'rain-jacket'}],
            [],  # timeline
            [],  # payments
        ]

        # Act
        order = OrderRepository().find_by_id(40, user_id=7, cursor=mock_cursor)

        # Assert
        assert order.status == OrderStatus.PROCESSING
        assert order.customer.email == 'jane@example.com'
        assert order.item_count == 2
        assert mock_cursor.execute.call_args_list[0][0][1] == (40, 7)

    def test_guest_order_has_no_customer(self, mock_cursor):
        mock_cursor.fetchone.return_value = order_row(
            user_id=None, customer_first_name=None, customer_last_name=None, customer_email=None
        )
        mock_cursor.fetchall.return_value = []

        order = OrderRepository().find_by_id(40, cursor=mock_cursor)

        assert order.customer is None

    def test_stats(self, mock_cursor):
        mock_cursor.fetchone.return_value = {'total_orders': 3, 'total_sales': Decimal('250.50')}
        mock_cursor.fetchall.return_value = [
            {'status': 'PENDING', 'count': 1},
            {'status': 'SHIPPED', 'count': 2},
        ]

        stats = OrderRepository().get_stats(cursor=mock_cursor)

        assert stats == {
            'total_orders': 3,
            'total_sales': 250.5,
            'orders_by_status': {'PENDING': 1, 'SHIPPED': 2},
        }

    def test_daily_sales_serializes_dates(self, mock_cursor):
        mock_cursor.fetchall.return_value = [
            {'day': date(2025, 11, 20), 'orders': 4, 'revenue': Decimal('99.90')},
        ]

        assert OrderRepository().get_daily_sales(7, cursor=mock_cursor) == [
            {'date': '2025-11-20', 'orders': 4, 'revenue': 99.9},
        ]
