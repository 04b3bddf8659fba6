"""
Unit tests for coupon discount rules and CouponService

Author: TM3
Date: 2025-11-21
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.promotion import Coupon, CouponCreate, UserCoupon
from app.services.coupon_service import CouponService, calculate_discount, validate_coupon


@pytest.fixture
def coupon(sample_coupon_row):
    return Coupon(**sample_coupon_row)


@pytest.fixture
def service():
    with patch("app.services.coupon_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = MagicMock()
        coupon_service = CouponService()
        coupon_service.repo = MagicMock()
        coupon_service.gift_cards = MagicMock()
        coupon_service.system_logs = MagicMock()
        yield coupon_service


class TestCalculateDiscount:

    def test_percentage(self, coupon):
        assert calculate_discount(coupon, Decimal("200")) == Decimal("20.00")

    def test_percentage_is_capped_at_max_discount(self, coupon):
        assert calculate_discount(coupon, Decimal("1000")) == Decimal("50.00")

    def test_fixed_never_exceeds_subtotal(self, coupon):
        fixed = coupon.model_copy(update={"type": "FIXED", "value": Decimal("75")})
        assert calculate_discount(fixed, Decimal("60")) == Decimal("60.00")
        assert calculate_discount(fixed, Decimal("100")) == Decimal("75.00")

    def test_rounds_half_up(self, coupon):
        uncapped = coupon.model_copy(update={"max_discount": None, "value": Decimal("12.5")})
        # 12.5% of 10.10 = 1.2625
        assert calculate_discount(uncapped, Decimal("10.10")) == Decimal("1.26")

    def test_zero_subtotal(self, coupon):
        assert calculate_discount(coupon, Decimal("0")) == Decimal("0.00")


class TestValidateCoupon:

    def test_valid_coupon_passes(self, coupon):
        validate_coupon(coupon, Decimal("150"))

    @pytest.mark.parametrize("update,message", [
        ({"is_active": False}, "not active"),
        ({"usage_count": 100}, "usage limit"),
    ])
    def test_rejections(self, coupon, update, message):
        with pytest.raises(ValidationError, match=message):
            validate_coupon(coupon.model_copy(update=update), Decimal("150"))

    def test_not_started(self, coupon, now):
        future = coupon.model_copy(update={"valid_from": now + timedelta(days=1)})
        with pytest.raises(ValidationError, match="not valid yet"):
            validate_coupon(future, Decimal("150"), now=now)

    def test_expired(self, coupon, now):
        expired = coupon.model_copy(update={"valid_until": now - timedelta(seconds=1)})
        with pytest.raises(ValidationError, match="expired"):
            validate_coupon(expired, Decimal("150"), now=now)

    def test_minimum_order_amount_is_named(self, coupon):
        with pytest.raises(ValidationError) as exc:
            validate_coupon(coupon, Decimal("99.99"))
        assert "100.00" in exc.value.message


class TestCouponService:

    def test_validate_code_returns_discount_and_total(self, service, coupon):
        service.repo.find_by_code.return_value = coupon

        result = service.validate_code(" save10 ", Decimal("200"))

        service.repo.find_by_code.assert_called_once_with("save10", cursor=None)
        assert result["discount"] == Decimal("20.00")
        assert result["total"] == Decimal("180.00")

    def test_unknown_code_is_not_found(self, service):
        service.repo.find_by_code.return_value = None
        with pytest.raises(NotFoundError):
            service.validate_code("nope", Decimal("10"))

    def test_claim_twice_conflicts(self, service, coupon):
        service.repo.find_by_code.return_value = coupon
        service.repo.find_user_coupon.return_value = UserCoupon(id=1, user_id=7, coupon_id=coupon.id)

        with pytest.raises(ConflictError):
            service.claim(7, "SAVE10")
        service.repo.create_user_coupon.assert_not_called()

    def test_claim_creates_wallet_entry(self, service, coupon):
        service.repo.find_by_code.return_value = coupon
        service.repo.find_user_coupon.return_value = None
        service.repo.create_user_coupon.return_value = UserCoupon(id=2, user_id=7, coupon_id=coupon.id)

        user_coupon = service.claim(7, "SAVE10")

        assert user_coupon.coupon.code == "SAVE10"

    def test_create_upper_cases_code_and_rejects_duplicates(self, service, now):
        data = CouponCreate(
            code="summer", type="FIXED", value=Decimal("5"),
            valid_from=now, valid_until=now + timedelta(days=7),
        )
        service.repo.code_exists.return_value = True

        with pytest.raises(ConflictError, match="SUMMER"):
            service.create_coupon(data, admin_id=1)

    def test_create_generates_code_with_prefix(self, service, now, coupon):
        data = CouponCreate(
            code_prefix="vip", type="PERCENTAGE", value=Decimal("15"),
            valid_from=now, valid_until=now + timedelta(days=7),
        )
        service.repo.code_exists.return_value = False
        service.repo.create.return_value = coupon

        service.create_coupon(data, admin_id=1)

        fields = service.repo.create.call_args[0][0]
        assert fields["code"].startswith("VIP-")
        assert fields["type"] == "PERCENTAGE"
        assert "code_prefix" not in fields
        service.system_logs.log_info.assert_called_once()
        assert service.system_logs.log_info.call_args[0][0] == "COUPON_CREATED"

    def test_create_schema_rejects_large_percentage(self, now):
        with pytest.raises(ValueError):
            CouponCreate(
                type="PERCENTAGE", value=Decimal("150"),
                valid_from=now, valid_until=now + timedelta(days=1),
            )

    def test_delete_used_coupon_conflicts(self, service, coupon):
        service.repo.find_by_id.return_value = coupon
        service.repo.count_used_user_coupons.return_value = 2

        with pytest.raises(ConflictError):
            service.delete_coupon(coupon.id, admin_id=1)
        service.repo.delete.assert_not_called()

    def test_toggle_flips_active_flag(self, service, coupon):
        service.repo.find_by_id.return_value = coupon
        service.repo.update.return_value = coupon.model_copy(update={"is_active": False})

        updated = service.toggle_active(coupon.id, admin_id=1)

        service.repo.update.assert_called_once_with(coupon.id, {"is_active": False})
        assert updated.is_active is False
