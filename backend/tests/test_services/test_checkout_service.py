"""
Unit tests for CheckoutService

Repositories and collaborating services are replaced with mocks; no
database is touched.

Author: TM3
Date: 2025-11-21
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.cart import Cart, CartItem
from app.domain.checkout import CheckoutRequest
from app.domain.operations import TransactionLog, TransactionStatus, TransactionType
from app.domain.promotion import Coupon, GiftCard, UserCoupon
from app.services.checkout_service import CheckoutService, calculate_totals


def make_cart(user_id=7, items=None):
    if items is None:
        items = [
            CartItem(id=1, cart_id=3, product_id=10, variant_id=100, quantity=2, price=Decimal("25.00")),
            CartItem(id=2, cart_id=3, product_id=11, variant_id=110, quantity=1, price=Decimal("50.00")),
        ]
    return Cart(id=3, user_id=user_id, items=items)


def make_request(**overrides):
    data = {
        "cart_id": 3,
        "shipping_address_id": 20,
        "billing_address_id": 21,
        "payment_method": "card",
    }
    data.update(overrides)
    return CheckoutRequest(**data)


@pytest.fixture
def service():
    checkout = CheckoutService()
    for name in (
        "carts", "addresses", "orders", "coupons", "gift_cards", "order_service",
        "gift_card_service", "stock", "transactions", "system_logs",
    ):
        setattr(checkout, name, MagicMock())
    checkout.transactions.find_by_idempotency_key.return_value = None
    checkout.carts.find_by_id.return_value = make_cart()
    return checkout


class TestCalculateTotals:

    def test_tax_is_charged_after_discount(self):
        # 100 subtotal, 10 discount: tax 90 * 0.18, shipping 30
        totals = calculate_totals(Decimal("100"), Decimal("10"))

        assert totals.shipping == Decimal("30.00")
        assert totals.tax == Decimal("16.20")
        assert totals.total == Decimal("136.20")

    def test_gift_card_covers_part_of_total(self):
        totals = calculate_totals(Decimal("100"), Decimal("10"), gift_card_balance=Decimal("50"))

        assert totals.gift_card == Decimal("50.00")
        assert totals.total == Decimal("86.20")

    def test_gift_card_never_exceeds_amount_due(self):
        totals = calculate_totals(Decimal("100"), gift_card_balance=Decimal("500"))

        assert totals.gift_card == Decimal("148.00")
        assert totals.total == Decimal("0.00")

    def test_tax_is_rounded_half_up(self):
        totals = calculate_totals(Decimal("0.25"))
        assert totals.tax == Decimal("0.05")


class TestLoadCart:

    def test_missing_fields_are_listed(self, service):
        with pytest.raises(ValidationError) as exc:
            service.load_cart(7, CheckoutRequest(cart_id=3))
        assert exc.value.message == (
            "Missing required fields: shipping_address_id, billing_address_id, payment_method"
        )

    def test_cart_of_another_user_is_not_found(self, service):
        service.carts.find_by_id.return_value = make_cart(user_id=99)
        with pytest.raises(NotFoundError):
            service.load_cart(7, make_request())

    def test_empty_cart_is_rejected(self, service):
        service.carts.find_by_id.return_value = make_cart(items=[])
        with pytest.raises(ValidationError, match="Cart is empty"):
            service.load_cart(7, make_request())

    def test_foreign_address_is_not_found(self, service):
        service.addresses.find_by_id.side_effect = lambda address_id, user_id=None: (
            None if address_id == 21 else MagicMock()
        )
        with pytest.raises(NotFoundError) as exc:
            service.load_cart(7, make_request())
        assert exc.value.message == "Address 21 not found"


class TestPromotionChecks:

    def _coupon(self, **overrides):
        now = datetime.now(timezone.utc)
        data = dict(
            id=5, code="WELCOME", type="FIXED", value=Decimal("20"),
            valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=1),
        )
        data.update(overrides)
        return Coupon(**data)

    def test_used_wallet_coupon_is_rejected(self, service):
        service.coupons.find_user_coupon.return_value = UserCoupon(id=1, user_id=7, coupon_id=5, is_used=True)
        service.coupons.find_by_id.return_value = self._coupon()

        with pytest.raises(ValidationError, match="already been used"):
            service.check_user_coupon(7, 5, Decimal("100"))

    def test_coupon_not_in_wallet_is_rejected(self, service):
        service.coupons.find_user_coupon.return_value = None

        with pytest.raises(ValidationError, match="does not belong to you"):
            service.check_user_coupon(7, 5, Decimal("100"))

    def test_wallet_coupon_is_returned_with_coupon(self, service):
        service.coupons.find_user_coupon.return_value = UserCoupon(id=1, user_id=7, coupon_id=5)
        service.coupons.find_by_id.return_value = self._coupon()

        user_coupon = service.check_user_coupon(7, 5, Decimal("100"))

        assert user_coupon.coupon.code == "WELCOME"

    def test_gift_card_of_another_user_is_invalid(self, service):
        service.gift_cards.find_by_code.return_value = GiftCard(
            id=9, code="GIFTABC", initial_balance=Decimal("50"), current_balance=Decimal("50"), user_id=99,
        )
        with pytest.raises(ValidationError, match="Invalid gift card code"):
            service.check_gift_card(7, "giftabc")
        service.gift_cards.find_by_code.assert_called_once_with("GIFTABC")


class TestProcessPayment:

    def test_replay_returns_original_result(self, service):
        # Arrange: a completed log exists for this key
        service.transactions.find_by_idempotency_key.return_value = MagicMock(
            status=TransactionStatus.COMPLETED, order_id=42,
            metadata={"order_number": "ORD-1", "total": "136.20"},
        )

        # Act
        result = service.process_payment(7, make_request(), idempotency_key="key-1")

        # Assert
        assert result.replayed is True
        assert result.order_id == 42
        assert result.total == Decimal("136.20")
        service.carts.find_by_id.assert_not_called()

    def test_successful_checkout_with_gift_card(self, service):
        # Arrange
        card = GiftCard(
            id=9, code="GIFTABC", initial_balance=Decimal("40"), current_balance=Decimal("40"), user_id=7,
        )
        service.gift_cards.find_by_code.return_value = card
        service.transactions.create.side_effect = [MagicMock(id=70), MagicMock(id=77)]

        with patch.object(service, "create_order", return_value=(42, "ORD-123")) as create_order, \
                patch.object(service, "record_payment", return_value=MagicMock(id=5)) as record_payment:
            # Act
            result = service.process_payment(7, make_request(gift_card_code="GIFTABC"), idempotency_key="key-2")

        # Assert: subtotal 100, tax 18, shipping 30, gift card 40
        assert result.order_id == 42
        assert result.order_number == "ORD-123"
        assert result.total == Decimal("108.00")
        assert result.payment_id == 5
        assert result.replayed is False

        checkout_call, card_call = service.transactions.create.call_args_list
        assert checkout_call[0] == (TransactionType.CHECKOUT, TransactionStatus.RESERVED)
        assert checkout_call[1]["idempotency_key"] == "key-2"
        log_type, log_status = card_call[0]
        assert log_type == TransactionType.GIFT_CARD_USAGE
        assert log_status == TransactionStatus.RESERVED
        assert card_call[1]["amount"] == Decimal("40.00")

        totals = create_order.call_args[0][5]
        assert totals.gift_card == Decimal("40.00")
        record_payment.assert_called_once_with(42, "card", Decimal("108.00"))
        service.transactions.mark_all.assert_called_once_with(
            [70, 77], TransactionStatus.COMPLETED,
            order_id=42, metadata={"order_number": "ORD-123", "total": "108.00"},
        )

    def test_failure_marks_reservations_failed(self, service):
        # Arrange
        service.gift_cards.find_by_code.return_value = GiftCard(
            id=9, code="GIFTABC", initial_balance=Decimal("40"), current_balance=Decimal("40"),
        )
        service.transactions.create.side_effect = [MagicMock(id=70), MagicMock(id=77)]

        with patch.object(service, "create_order", side_effect=ValidationError("Insufficient stock")):
            # Act / Assert
            with pytest.raises(ValidationError):
                service.process_payment(7, make_request(gift_card_code="GIFTABC"), idempotency_key="key-3")

        service.transactions.mark_all.assert_called_once_with(
            [70, 77], TransactionStatus.FAILED, error_message="Insufficient stock"
        )
        service.system_logs.log_info.assert_not_called()

    def test_missing_key_gets_generated(self, service):
        with patch.object(service, "create_order", return_value=(1, "ORD-1")), \
                patch.object(service, "record_payment", return_value=MagicMock(id=1)):
            service.process_payment(7, make_request())

        key = service.transactions.find_by_idempotency_key.call_args[0][0]
        assert len(key) == 36


class InMemoryTransactionLogs:
    """Keeps transaction logs between calls so retries see earlier attempts"""

    def __init__(self):
        self.logs = []

    def create(self, type, status, user_id=None, reference_id=None, amount=None,
               idempotency_key=None, metadata=None):
        log = TransactionLog(
            id=len(self.logs) + 1, type=type, status=status, user_id=user_id,
            reference_id=reference_id, amount=amount, idempotency_key=idempotency_key, metadata=metadata,
        )
        self.logs.append(log)
        return log

    def mark_all(self, log_ids, status, order_id=None, metadata=None, error_message=None):
        for log in self.logs:
            if log.id in log_ids:
                log.status = status
                log.order_id = order_id or log.order_id
                log.metadata = metadata or log.metadata
                log.error_message = error_message or log.error_message

    def find_by_idempotency_key(self, key, type=None, status=None):
        matches = [
            log for log in self.logs
            if log.idempotency_key == key
            and (type is None or log.type == type)
            and (status is None or log.status == status)
        ]
        return matches[-1] if matches else None


class TestIdempotentRetry:

    @pytest.fixture
    def logs(self, service):
        service.transactions = InMemoryTransactionLogs()
        return service.transactions

    def _checkout_twice(self, service, request, key="key-9"):
        with patch.object(service, "create_order", side_effect=[(500, "ORD-500"), (501, "ORD-501")]) as create_order, \
                patch.object(service, "record_payment", return_value=MagicMock(id=5)):
            first = service.process_payment(7, request, idempotency_key=key)
            second = service.process_payment(7, request, idempotency_key=key)
        return first, second, create_order

    def test_plain_checkout_is_not_repeated(self, service, logs):
        # Act
        first, second, create_order = self._checkout_twice(service, make_request())

        # Assert
        assert create_order.call_count == 1
        assert second.replayed is True
        assert second.order_id == first.order_id == 500
        assert second.order_number == "ORD-500"
        assert second.total == first.total
        assert [log.type for log in logs.logs] == [TransactionType.CHECKOUT]

    def test_gift_card_checkout_is_not_repeated(self, service, logs):
        service.gift_cards.find_by_code.return_value = GiftCard(
            id=9, code="GIFTABC", initial_balance=Decimal("40"), current_balance=Decimal("40"), user_id=7,
        )

        first, second, create_order = self._checkout_twice(service, make_request(gift_card_code="GIFTABC"))

        assert create_order.call_count == 1
        assert second.replayed is True
        assert second.total == first.total == Decimal("108.00")
        assert all(log.status == TransactionStatus.COMPLETED for log in logs.logs)

    def test_running_checkout_conflicts(self, service, logs):
        logs.create(TransactionType.CHECKOUT, TransactionStatus.RESERVED, user_id=7, idempotency_key="key-9")

        with pytest.raises(ConflictError):
            service.process_payment(7, make_request(), idempotency_key="key-9")
        service.carts.find_by_id.assert_not_called()

    def test_failed_attempt_can_be_retried(self, service, logs):
        with patch.object(service, "create_order", side_effect=[ValidationError("Insufficient stock"), (502, "ORD-502")]), \
                patch.object(service, "record_payment", return_value=MagicMock(id=6)):
            with pytest.raises(ValidationError):
                service.process_payment(7, make_request(), idempotency_key="key-9")
            result = service.process_payment(7, make_request(), idempotency_key="key-9")

        assert result.replayed is False
        assert result.order_id == 502
        assert [log.status for log in logs.logs] == [TransactionStatus.FAILED, TransactionStatus.COMPLETED]

    def test_concurrent_duplicate_hits_unique_key(self, service):
        service.transactions.create.side_effect = psycopg2.IntegrityError("duplicate key")

        with pytest.raises(ConflictError, match="already in progress"):
            service.process_payment(7, make_request(), idempotency_key="key-9")
