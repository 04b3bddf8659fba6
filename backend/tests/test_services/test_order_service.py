"""
Unit tests for OrderService status handling

Author: TM3
Date: 2025-11-21
"""
import re
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.order import Order, OrderCreate, OrderItem, OrderStatusUpdate, Payment, TimelineEntryCreate
from app.domain.order_status import OrderStatus
from app.services.order_service import OrderService, generate_order_number


def make_order(status=OrderStatus.PENDING, payments=None):
    return Order(
        id=40, order_number="ORD-123456-0001", user_id=7, total=Decimal("60.00"), status=status,
        items=[OrderItem(
            id=70, order_id=40, product_id=10, variant_id=100, product_name="Rain Jacket",
            quantity=2, price=Decimal("30.00"), total=Decimal("60.00"),
        )],
        payments=payments or [],
    )


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def service(cursor):
    with patch("app.services.order_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = cursor
        orders = OrderService()
        for name in ("repo", "products", "addresses", "coupons", "stock", "system_logs"):
            setattr(orders, name, MagicMock())
        yield orders


def test_order_number_format():
    assert re.fullmatch(r"ORD-\d{6}-\d{4}", generate_order_number())


class TestUpdateStatus:

    def test_valid_transition_adds_timeline_and_log(self, service, cursor):
        # Arrange
        order = make_order()
        service.repo.find_by_id.return_value = order

        # Act
        service.update_status(40, OrderStatusUpdate(status="processing", note="Packing"), admin_id=1)

        # Assert
        service.repo.update_status.assert_called_once_with(40, "PROCESSING", tracking_number=None, cursor=cursor)
        args, kwargs = service.repo.add_timeline.call_args
        assert args[1] == "PROCESSING"
        assert args[2] == "Order status changed from PENDING to PROCESSING: Packing"
        assert kwargs["created_by"] == 1
        assert service.system_logs.log_info.call_args[0][0] == "ORDER_STATUS_UPDATED"

    def test_invalid_transition_is_rejected(self, service):
        service.repo.find_by_id.return_value = make_order(status=OrderStatus.SHIPPED)

        with pytest.raises(ValidationError) as exc:
            service.update_status(40, OrderStatusUpdate(status="PENDING"))
        assert exc.value.message == (
            "Invalid status transition from SHIPPED to PENDING. Allowed: DELIVERED, RETURNED"
        )
        service.repo.update_status.assert_not_called()

    def test_unknown_status(self, service):
        with pytest.raises(ValidationError, match="Invalid order status"):
            service.update_status(40, OrderStatusUpdate(status="LOST"))

    def test_paid_requires_completed_payment(self, service):
        service.repo.find_by_id.return_value = make_order()
        with pytest.raises(ValidationError, match="completed payment"):
            service.update_status(40, OrderStatusUpdate(status="PAID"))

    def test_paid_with_completed_payment(self, service):
        payment = Payment(id=1, order_id=40, amount=Decimal("60"), method="card", status="COMPLETED")
        service.repo.find_by_id.return_value = make_order(payments=[payment])

        service.update_status(40, OrderStatusUpdate(status="PAID"))

        assert service.repo.update_status.call_args[0][1] == "PAID"

    def test_cancel_restores_stock(self, service, cursor):
        order = make_order(status=OrderStatus.PROCESSING)
        service.repo.find_by_id.return_value = order

        service.update_status(40, OrderStatusUpdate(status="CANCELLED"))

        service.stock.restore_for_items.assert_called_once_with(order.items, cursor)

    def test_refund_marks_payments_refunded(self, service, cursor):
        service.repo.find_by_id.return_value = make_order(status=OrderStatus.PAID)

        service.update_status(40, OrderStatusUpdate(status="REFUNDED"))

        service.repo.update_payments_status.assert_called_once_with(40, "REFUNDED", cursor=cursor)
        service.stock.restore_for_items.assert_not_called()

    def test_missing_order(self, service):
        service.repo.find_by_id.return_value = None
        with pytest.raises(NotFoundError):
            service.update_status(40, OrderStatusUpdate(status="PROCESSING"))


class TestCustomerCancel:

    def test_pending_order_can_be_cancelled(self, service, cursor):
        order = make_order()
        service.repo.find_by_id.return_value = order

        service.cancel_own(40, user_id=7)

        service.repo.find_by_id.assert_any_call(40, user_id=7, cursor=cursor)
        service.repo.update_status.assert_called_once_with(40, "CANCELLED", cursor=cursor)
        service.stock.restore_for_items.assert_called_once_with(order.items, cursor)

    def test_shipped_order_cannot_be_cancelled(self, service):
        service.repo.find_by_id.return_value = make_order(status=OrderStatus.SHIPPED)
        with pytest.raises(ValidationError):
            service.cancel_own(40, user_id=7)
        service.repo.update_status.assert_not_called()


class TestCreateOrder:

    def test_items_are_required(self, service):
        with pytest.raises(ValidationError, match="items are required"):
            service.create_order(7, OrderCreate())

    def test_unknown_address(self, service):
        service.addresses.find_by_id.return_value = None
        data = OrderCreate(items=[{"product_id": 10, "quantity": 1}], shipping_address_id=20)

        with pytest.raises(NotFoundError):
            service.create_order(7, data)


class TestDeleteAndTimeline:

    def test_delete_restores_stock_of_open_order(self, service, cursor):
        order = make_order(status=OrderStatus.PROCESSING)
        service.repo.find_by_id.return_value = order

        service.delete_order(40, admin_id=1)

        service.stock.restore_for_items.assert_called_once_with(order.items, cursor)
        service.repo.delete.assert_called_once_with(40, cursor=cursor)
        assert service.system_logs.log_warning.call_args[0][0] == "ORDER_DELETED"

    def test_delete_cancelled_order_keeps_stock(self, service):
        service.repo.find_by_id.return_value = make_order(status=OrderStatus.CANCELLED)

        service.delete_order(40)

        service.stock.restore_for_items.assert_not_called()

    def test_timeline_entry_defaults_to_current_status(self, service):
        service.repo.find_by_id.return_value = make_order(status=OrderStatus.SHIPPED)

        service.add_timeline_entry(40, TimelineEntryCreate(description="Left the warehouse"), admin_id=1)

        service.repo.add_timeline.assert_called_once_with(40, "SHIPPED", "Left the warehouse", created_by=1)

    def test_next_statuses(self, service):
        service.repo.find_by_id.return_value = make_order(status=OrderStatus.DELIVERED)

        result = service.next_statuses(40)

        assert result["current_status"] == "DELIVERED"
        assert [s["value"] for s in result["valid_next_statuses"]] == ["COMPLETED", "RETURNED"]
