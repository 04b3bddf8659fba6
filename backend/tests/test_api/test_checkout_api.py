"""
API tests for /api/v1/checkout

Author: TM3
Date: 2025-11-21
"""
from decimal import Decimal
from unittest.mock import patch

from app.core.exceptions import ValidationError
from app.domain.checkout import CheckoutResult

PAYLOAD = {
    "cart_id": 3,
    "shipping_address_id": 20,
    "billing_address_id": 21,
    "payment_method": "card",
}


class TestProcessPayment:

    def test_requires_login(self, client):
        assert client.post("/api/v1/checkout/process-payment", json=PAYLOAD).status_code == 401

    @patch("app.api.checkout.CheckoutService")
    def test_idempotency_key_is_forwarded(self, mock_service, client, user_headers):
        mock_service.return_value.process_payment.return_value = CheckoutResult(
            order_id=42, order_number="ORD-1", total=Decimal("136.20"), payment_id=5,
        )

        response = client.post(
            "/api/v1/checkout/process-payment",
            json=PAYLOAD,
            headers={**user_headers, "X-Idempotency-Key": "key-1"},
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "order_id": 42, "order_number": "ORD-1", "total": 136.2, "payment_id": 5, "replayed": False,
        }
        args, kwargs = mock_service.return_value.process_payment.call_args
        assert args[0] == 7
        assert kwargs["idempotency_key"] == "key-1"

    @patch("app.api.checkout.CheckoutService")
    def test_business_error_is_400(self, mock_service, client, user_headers):
        mock_service.return_value.process_payment.side_effect = ValidationError("Cart is empty")

        response = client.post("/api/v1/checkout/process-payment", json=PAYLOAD, headers=user_headers)

        assert response.status_code == 400
        assert response.json() == {"detail": "Cart is empty"}

    @patch("app.api.checkout.SystemLogService")
    @patch("app.api.checkout.CheckoutService")
    def test_unexpected_error_is_logged(self, mock_service, mock_logs, client, user_headers):
        mock_service.return_value.process_payment.side_effect = RuntimeError("gateway timeout")

        response = client.post("/api/v1/checkout/process-payment", json=PAYLOAD, headers=user_headers)

        assert response.status_code == 500
        assert mock_logs.return_value.log_error.call_args[0][0] == "CHECKOUT_FAILED"
