"""
Unit tests for GiftCardService

Author: TM3
Date: 2025-11-21
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.domain.promotion import GiftCard, GiftCardCreate, GiftCardStatus, GiftCardUpdate
from app.services.gift_card_service import GiftCardService, rebalance_on_initial_change


@pytest.fixture
def card(sample_gift_card_row):
    return GiftCard(**sample_gift_card_row)


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def service(cursor):
    with patch("app.services.gift_card_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = cursor
        gift_cards = GiftCardService()
        gift_cards.repo = MagicMock()
        gift_cards.notifications = MagicMock()
        gift_cards.system_logs = MagicMock()
        yield gift_cards


class TestRebalance:

    def test_spent_amount_is_preserved(self, card):
        # 200 initial, 150 left: 50 already spent
        assert rebalance_on_initial_change(card, Decimal("300")) == Decimal("250.00")

    def test_never_below_zero(self, card):
        assert rebalance_on_initial_change(card, Decimal("30")) == Decimal("0.00")


class TestLookup:

    def test_code_is_sanitized_before_lookup(self, service, card):
        service.repo.find_by_code.return_value = card

        service.get_by_code(" gift 1234 ", user_id=7)

        service.repo.find_by_code.assert_called_once_with("GIFTI234")

    def test_card_of_another_user_is_forbidden(self, service, card):
        service.repo.find_by_code.return_value = card
        with pytest.raises(ForbiddenError):
            service.get_by_code(card.code, user_id=8)

    def test_admin_sees_any_card(self, service, card):
        service.repo.find_by_code.return_value = card
        assert service.get_by_code(card.code, user_id=1, is_admin=True) is card

    def test_unknown_code(self, service):
        service.repo.find_by_code.return_value = None
        with pytest.raises(NotFoundError):
            service.get_by_code("missing")


class TestApplyTransaction:

    def test_debit_updates_balance_and_notifies_owner(self, service, card, cursor):
        # Act
        service.apply_transaction(card, Decimal("-50"), description="Order ORD-1", order_id=3, cursor=cursor)

        # Assert
        card_id, new_balance, new_status = service.repo.update_balance.call_args[0]
        assert card_id == card.id
        assert new_balance == Decimal("100.00")
        assert new_status == "ACTIVE"
        assert service.repo.update_balance.call_args[1]["last_used"] is not None
        service.notifications.create.assert_called_once()
        assert service.notifications.create.call_args[0][0] == card.user_id

    def test_spending_everything_marks_card_used(self, service, card, cursor):
        service.apply_transaction(card, Decimal("-150"), cursor=cursor)

        assert service.repo.update_balance.call_args[0][2] == "USED"

    def test_overdraw_is_rejected(self, service, card, cursor):
        with pytest.raises(ValidationError, match="Insufficient gift card balance"):
            service.apply_transaction(card, Decimal("-150.01"), cursor=cursor)
        service.repo.update_balance.assert_not_called()

    def test_expired_card_is_rejected(self, service, card, cursor, now):
        expired = card.model_copy(update={"expires_at": now - timedelta(days=1)})
        with pytest.raises(ValidationError, match="expired"):
            service.apply_transaction(expired, Decimal("10"), cursor=cursor)

    def test_credit_keeps_last_used(self, service, card, cursor):
        service.apply_transaction(card, Decimal("25"), cursor=cursor)

        assert service.repo.update_balance.call_args[0][1] == Decimal("175.00")
        assert service.repo.update_balance.call_args[1]["last_used"] is None

    def test_unowned_card_sends_no_notification(self, service, card, cursor):
        anonymous = card.model_copy(update={"user_id": None})
        service.apply_transaction(anonymous, Decimal("-10"), cursor=cursor)
        service.notifications.create.assert_not_called()


class TestAdminWrites:

    def test_create_generates_sanitized_code(self, service, card):
        service.repo.code_exists.return_value = False
        service.repo.create.return_value = card

        service.create_card(GiftCardCreate(initial_balance=Decimal("75")), admin_id=1)

        fields = service.repo.create.call_args[0][0]
        assert fields["code"].startswith("GIFT")
        assert fields["initial_balance"] == fields["current_balance"] == Decimal("75.00")
        assert fields["status"] == "ACTIVE"

    def test_create_with_taken_code_conflicts(self, service):
        service.repo.code_exists.return_value = True
        with pytest.raises(ConflictError):
            service.create_card(GiftCardCreate(code="gift-0l5", initial_balance=Decimal("10")))
        service.repo.code_exists.assert_called_once()
        assert service.repo.code_exists.call_args[0][0] == "GIFT-OIS"

    def test_update_rebalances_current_balance(self, service, card):
        service.repo.find_by_id.return_value = card
        service.repo.update.return_value = card

        service.update_card(card.id, GiftCardUpdate(initial_balance=Decimal("100")), admin_id=1)

        fields = service.repo.update.call_args[0][1]
        assert fields["initial_balance"] == Decimal("100.00")
        assert fields["current_balance"] == Decimal("50.00")

    def test_update_status_only(self, service, card):
        service.repo.find_by_id.return_value = card
        service.repo.update.return_value = card

        service.update_card(card.id, GiftCardUpdate(status=GiftCardStatus.EXPIRED))

        assert service.repo.update.call_args[0][1] == {"status": "EXPIRED"}

    def test_add_transaction_locks_card(self, service, card, cursor):
        service.repo.find_by_id.return_value = card
        service.repo.add_transaction.return_value = MagicMock(id=4, amount=Decimal("-20.00"))

        service.add_transaction(card.id, Decimal("-20"), description="Manual", admin_id=1)

        service.repo.find_by_id.assert_called_once_with(card.id, for_update=True, cursor=cursor)
        assert service.system_logs.log_info.call_args[0][0] == "GIFT_CARD_TRANSACTION"
