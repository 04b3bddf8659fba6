"""
API tests for /api/v1/cart

Author: TM3
Date: 2025-11-21
"""
from decimal import Decimal
from unittest.mock import patch

from app.core.exceptions import InsufficientStockError
from app.domain.cart import Cart, CartItem


def make_cart(**owner):
    return Cart(id=3, items=[
        CartItem(id=1, cart_id=3, product_id=10, variant_id=100, quantity=2, price=Decimal("25.00")),
    ], **owner)


class TestCartOwner:

    @patch("app.api.cart.CartService")
    def test_guest_cart_by_session_header(self, mock_service, client):
        mock_service.return_value.get_cart.return_value = make_cart(session_id="guest-1")

        response = client.get("/api/v1/cart/", headers={"X-Session-Id": "guest-1"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["item_count"] == 2
        assert data["subtotal"] == 50.0
        assert data["items"][0]["line_total"] == 50.0
        mock_service.return_value.get_cart.assert_called_once_with(user_id=None, session_id="guest-1")

    @patch("app.api.cart.CartService")
    def test_signed_in_cart_by_token(self, mock_service, client, user_headers):
        mock_service.return_value.get_cart.return_value = make_cart(user_id=7)

        client.get("/api/v1/cart/", headers=user_headers)

        assert mock_service.return_value.get_cart.call_args[1]["user_id"] == 7


class TestCartItems:

    @patch("app.api.cart.CartService")
    def test_add_item_over_stock_is_400(self, mock_service, client):
        mock_service.return_value.add_item.side_effect = InsufficientStockError(
            "Insufficient stock", details={"available": 1}
        )

        response = client.post(
            "/api/v1/cart/items",
            json={"product_id": 10, "variant_id": 100, "quantity": 5},
            headers={"X-Session-Id": "guest-1"},
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Insufficient stock", "details": {"available": 1}}

    def test_quantity_must_be_positive(self, client):
        response = client.post("/api/v1/cart/items", json={"product_id": 10, "quantity": 0})
        assert response.status_code == 422

    @patch("app.api.cart.CartService")
    def test_zero_quantity_update_is_forwarded(self, mock_service, client):
        mock_service.return_value.update_item.return_value = make_cart()

        client.put("/api/v1/cart/items/1", json={"quantity": 0}, headers={"X-Session-Id": "guest-1"})

        args, kwargs = mock_service.return_value.update_item.call_args
        assert args == (1, 0)
        assert kwargs == {"user_id": None, "session_id": "guest-1"}
