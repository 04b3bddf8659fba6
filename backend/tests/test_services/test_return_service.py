"""
Unit tests for ReturnService

Author: TM3
Date: 2025-11-21
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.operations import (
    AdminReturnCreate, ReturnCreate, ReturnRequest, ReturnStatus, ReturnStatusUpdate,
)
from app.domain.order import Order, OrderItem
from app.domain.order_status import OrderStatus
from app.services.return_service import ReturnService


def make_order(status=OrderStatus.DELIVERED):
    return Order(
        id=40, order_number="ORD-123456-0001", user_id=7, total=Decimal("60.00"), status=status,
        items=[OrderItem(
            id=70, order_id=40, product_id=10, product_name="Rain Jacket",
            quantity=2, price=Decimal("30.00"), total=Decimal("60.00"),
        )],
    )


def make_return(**overrides):
    data = dict(id=5, user_id=7, order_id=40, order_item_id=70, reason="Too small")
    data.update(overrides)
    return ReturnRequest(**data)


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def service(cursor):
    with patch("app.services.return_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = cursor
        returns = ReturnService()
        returns.repo = MagicMock()
        returns.orders = MagicMock()
        returns.system_logs = MagicMock()
        yield returns


class TestCreateReturn:

    def test_opens_request_for_delivered_item(self, service, cursor):
        # Arrange
        service.orders.find_by_id.return_value = make_order()
        service.repo.find_open_for_item.return_value = None
        service.repo.create.return_value = 5
        service.repo.find_by_id.return_value = make_return()

        # Act
        created = service.create_for_user(7, ReturnCreate(order_id=40, order_item_id=70, reason="Too small"))

        # Assert
        service.orders.find_by_id.assert_called_once_with(40, user_id=7, cursor=cursor)
        fields = service.repo.create.call_args[0][0]
        assert fields["type"] == "RETURN"
        assert fields["quantity"] == 1
        assert created.status == ReturnStatus.PENDING

    def test_order_of_another_user_is_not_found(self, service):
        service.orders.find_by_id.return_value = None
        with pytest.raises(NotFoundError):
            service.create_for_user(8, ReturnCreate(order_id=40, order_item_id=70, reason="x"))

    def test_pending_order_cannot_be_returned(self, service):
        service.orders.find_by_id.return_value = make_order(status=OrderStatus.PENDING)
        with pytest.raises(ValidationError, match="shipped or delivered"):
            service.create_for_user(7, ReturnCreate(order_id=40, order_item_id=70, reason="x"))

    def test_item_must_belong_to_order(self, service):
        service.orders.find_by_id.return_value = make_order()
        with pytest.raises(ValidationError, match="does not belong"):
            service.create_for_user(7, ReturnCreate(order_id=40, order_item_id=71, reason="x"))

    def test_quantity_cannot_exceed_ordered(self, service):
        service.orders.find_by_id.return_value = make_order()
        with pytest.raises(ValidationError, match="ordered quantity"):
            service.create_for_user(7, ReturnCreate(order_id=40, order_item_id=70, reason="x", quantity=3))

    def test_second_open_request_conflicts(self, service):
        service.orders.find_by_id.return_value = make_order()
        service.repo.find_open_for_item.return_value = make_return()

        with pytest.raises(ConflictError):
            service.create_for_user(7, ReturnCreate(order_id=40, order_item_id=70, reason="x"))
        service.repo.create.assert_not_called()

    def test_admin_create_is_logged(self, service):
        service.orders.find_by_id.return_value = make_order()
        service.repo.find_open_for_item.return_value = None
        service.repo.create.return_value = 5
        service.repo.find_by_id.return_value = make_return()

        service.create_for_admin(
            AdminReturnCreate(user_id=7, order_id=40, order_item_id=70, reason="Damaged"), admin_id=1
        )

        assert service.orders.find_by_id.call_args[1]["user_id"] == 7
        assert service.system_logs.log_info.call_args[0][0] == "RETURN_CREATED"


class TestUpdateStatus:

    def test_invalid_transition_lists_allowed(self, service):
        service.repo.find_by_id.return_value = make_return()

        with pytest.raises(ValidationError) as exc:
            service.update_status(5, ReturnStatusUpdate(status=ReturnStatus.REFUNDED))
        assert exc.value.message == (
            "Invalid status transition from PENDING to REFUNDED. Allowed: APPROVED, REJECTED"
        )

    def test_approve(self, service, cursor):
        service.repo.find_by_id.return_value = make_return()

        service.update_status(5, ReturnStatusUpdate(status=ReturnStatus.APPROVED, admin_notes="ok"), admin_id=1)

        args, kwargs = service.repo.update_status.call_args
        assert args == (5, "APPROVED")
        assert kwargs["admin_notes"] == "ok"
        assert kwargs["refund_date"] is None
        assert service.system_logs.log_info.call_args[0][0] == "RETURN_STATUS_UPDATED"

    def test_refund_requires_amount(self, service):
        service.repo.find_by_id.return_value = make_return(status=ReturnStatus.APPROVED)
        with pytest.raises(ValidationError, match="refund amount"):
            service.update_status(5, ReturnStatusUpdate(status=ReturnStatus.REFUNDED))

    def test_refund_cannot_exceed_item_total(self, service):
        service.repo.find_by_id.return_value = make_return(status=ReturnStatus.APPROVED)
        service.orders.find_item.return_value = make_order().items[0]

        with pytest.raises(ValidationError, match="60.00"):
            service.update_status(
                5, ReturnStatusUpdate(status=ReturnStatus.REFUNDED, refund_amount=Decimal("60.01"))
            )
        service.repo.update_status.assert_not_called()

    def test_refund_stamps_date(self, service):
        service.repo.find_by_id.return_value = make_return(status=ReturnStatus.APPROVED)
        service.orders.find_item.return_value = make_order().items[0]

        service.update_status(
            5, ReturnStatusUpdate(status=ReturnStatus.REFUNDED, refund_amount=Decimal("30"), refund_method="card")
        )

        kwargs = service.repo.update_status.call_args[1]
        assert kwargs["refund_amount"] == Decimal("30")
        assert kwargs["refund_method"] == "card"
        assert kwargs["refund_date"] is not None

    def test_unknown_request(self, service):
        service.repo.find_by_id.return_value = None
        with pytest.raises(NotFoundError):
            service.update_status(99, ReturnStatusUpdate(status=ReturnStatus.APPROVED))
