"""
API tests for /api/v1/orders

Author: TM3
Date: 2025-11-21
"""
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.order import Order
from app.domain.order_status import OrderStatus


def make_order(status=OrderStatus.PENDING):
    return Order(id=40, order_number="ORD-123456-0001", user_id=7, total=Decimal("60.00"), status=status)


class TestCustomerOrders:

    @patch("app.api.orders.OrderService")
    def test_my_orders_are_scoped_to_token_user(self, mock_service, client, user_headers):
        mock_service.return_value.list_user_orders.return_value = ([make_order()], 1)

        response = client.get("/api/v1/orders/my?status=PENDING", headers=user_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["data"][0]["next_statuses"] == ["PAID", "PROCESSING", "CANCELLED"]
        args, kwargs = mock_service.return_value.list_user_orders.call_args
        assert args == (7,)
        assert kwargs["status"] == "PENDING"

    @patch("app.api.orders.OrderService")
    def test_foreign_order_is_404(self, mock_service, client, user_headers):
        mock_service.return_value.get_order.side_effect = NotFoundError("Order", 40)

        response = client.get("/api/v1/orders/my/40", headers=user_headers)

        assert response.status_code == 404
        assert mock_service.return_value.get_order.call_args[1]["user_id"] == 7

    @patch("app.api.orders.OrderService")
    def test_cancel_shipped_order_is_400(self, mock_service, client, user_headers):
        mock_service.return_value.cancel_own.side_effect = ValidationError("A SHIPPED order cannot be cancelled")

        response = client.post("/api/v1/orders/my/40/cancel", headers=user_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "A SHIPPED order cannot be cancelled"


class TestAdminOrders:

    def test_listing_requires_admin(self, client, user_headers):
        assert client.get("/api/v1/orders/", headers=user_headers).status_code == 403

    @patch("app.api.orders.OrderService")
    def test_status_update_passes_admin_and_ip(self, mock_service, client, admin_headers):
        mock_service.return_value.update_status.return_value = make_order(OrderStatus.PROCESSING)

        response = client.put(
            "/api/v1/orders/40/status",
            json={"status": "PROCESSING", "note": "Packing"},
            headers={**admin_headers, "X-Forwarded-For": "203.0.113.9"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "PROCESSING"
        args, kwargs = mock_service.return_value.update_status.call_args
        assert args[0] == 40
        assert args[1].note == "Packing"
        assert kwargs["admin_id"] == 1
        assert kwargs["ip_address"] == "203.0.113.9"

    @patch("app.api.orders.OrderService")
    def test_next_statuses(self, mock_service, client, admin_headers):
        mock_service.return_value.next_statuses.return_value = {
            "current_status": "SHIPPED", "current_label": "Shipped",
            "valid_next_statuses": [{"value": "DELIVERED", "label": "Delivered"}],
            "recommended": "DELIVERED",
        }

        response = client.get("/api/v1/orders/40/next-statuses", headers=admin_headers)

        assert response.json()["data"]["recommended"] == "DELIVERED"

    @patch("app.api.orders.OrderService")
    def test_date_range_is_parsed(self, mock_service, client, admin_headers):
        mock_service.return_value.list_orders.return_value = ([], 0)

        response = client.get(
            "/api/v1/orders/?date_from=2025-11-01&date_to=2025-11-30", headers=admin_headers
        )

        assert response.status_code == 200
        kwargs = mock_service.return_value.list_orders.call_args[1]
        assert kwargs["date_from"] == date(2025, 11, 1)
        assert kwargs["date_to"] == date(2025, 11, 30)

    @patch("app.api.orders.OrderService")
    def test_malformed_date_is_422(self, mock_service, client, admin_headers):
        response = client.get("/api/v1/orders/?date_from=yesterday", headers=admin_headers)

        assert response.status_code == 422
        mock_service.return_value.list_orders.assert_not_called()
