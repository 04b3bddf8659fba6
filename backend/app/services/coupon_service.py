"""
Coupon Service
Discount calculation, validation, admin management and user wallets

Author: TM3
Date: 2025-11-21
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.base import money
from app.domain.promotion import (
    Coupon, CouponCreate, CouponType, CouponUpdate, UserCoupon, as_utc,
)
from app.repositories.coupon_repository import CouponRepository
from app.repositories.gift_card_repository import GiftCardRepository
from app.services.system_log_service import SystemLogService
from app.utils.codes import generate_coupon_code

logger = logging.getLogger(__name__)

CODE_GENERATION_ATTEMPTS = 10


def calculate_discount(coupon: Coupon, subtotal) -> Decimal:
    """
    Discount a coupon grants on a subtotal

    PERCENTAGE: subtotal * value / 100, capped at max_discount.
    FIXED: value.
    Never more than the subtotal; rounded half-up to cents.
    """
    subtotal = Decimal(str(subtotal))
    if subtotal <= 0:
        return Decimal("0.00")

    if coupon.type == CouponType.PERCENTAGE:
        discount = subtotal * coupon.value / Decimal("100")
        if coupon.max_discount is not None and discount > coupon.max_discount:
            discount = coupon.max_discount
    else:
        discount = coupon.value

    return money(min(discount, subtotal))


def validate_coupon(coupon: Coupon, subtotal, now: Optional[datetime] = None):
    """
    Raise ValidationError unless the coupon can be applied to subtotal
    """
    now = now or datetime.now(timezone.utc)
    if not coupon.is_active:
        raise ValidationError("Coupon is not active")
    if not coupon.is_started(now):
        raise ValidationError("Coupon is not valid yet")
    if coupon.is_expired(now):
        raise ValidationError("Coupon has expired")
    if coupon.is_exhausted:
        raise ValidationError("Coupon usage limit has been reached")
    if coupon.min_order_amount is not None and Decimal(str(subtotal)) < coupon.min_order_amount:
        raise ValidationError(
            f"Minimum order amount for this coupon is {money(coupon.min_order_amount)}"
        )


class CouponService:

    def __init__(self):
        self.repo = CouponRepository()
        self.gift_cards = GiftCardRepository()
        self.system_logs = SystemLogService()

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def get_by_code(self, code: str, cursor=None) -> Coupon:
        coupon = self.repo.find_by_code(code.strip(), cursor=cursor)
        if not coupon:
            raise NotFoundError("Coupon", code.strip().upper())
        return coupon

    def apply_code(self, code: str, subtotal, cursor=None) -> Tuple[Coupon, Decimal]:
        """Look up, validate and price a coupon code"""
        coupon = self.get_by_code(code, cursor=cursor)
        validate_coupon(coupon, subtotal)
        return coupon, calculate_discount(coupon, subtotal)

    def validate_code(self, code: str, subtotal) -> dict:
        coupon, discount = self.apply_code(code, subtotal)
        subtotal = money(subtotal)
        return {
            "coupon": coupon,
            "discount": discount,
            "total": money(subtotal - discount),
        }

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    def wallet(self, user_id: int) -> dict:
        now = datetime.now(timezone.utc)
        coupons = self.repo.find_user_coupons(user_id)
        entries = []
        for user_coupon in coupons:
            data = user_coupon.to_dict()
            data["is_expired"] = user_coupon.coupon.is_expired(now) if user_coupon.coupon else False
            entries.append(data)
        return {
            "coupons": entries,
            "gift_cards": self.gift_cards.find_by_user(user_id),
        }

    def claim(self, user_id: int, code: str) -> UserCoupon:
        now = datetime.now(timezone.utc)
        with db_cursor() as cursor:
            coupon = self.get_by_code(code, cursor=cursor)
            if not coupon.is_active:
                raise ValidationError("Coupon is not active")
            if coupon.is_expired(now):
                raise ValidationError("Coupon has expired")
            if coupon.is_exhausted:
                raise ValidationError("Coupon usage limit has been reached")
            if self.repo.find_user_coupon(user_id, coupon.id, cursor=cursor):
                raise ConflictError("Coupon already claimed")

            user_coupon = self.repo.create_user_coupon(user_id, coupon.id, cursor=cursor)
            user_coupon.coupon = coupon
            return user_coupon

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_coupons(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Coupon], int]:
        return self.repo.find_all(search=search, is_active=is_active, limit=limit, offset=offset)

    def get_coupon(self, coupon_id: int) -> Coupon:
        coupon = self.repo.find_by_id(coupon_id)
        if not coupon:
            raise NotFoundError("Coupon", coupon_id)
        return coupon

    def _new_code(self, prefix: Optional[str], cursor) -> str:
        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = generate_coupon_code(prefix or "")
            if not self.repo.code_exists(code, cursor=cursor):
                return code
        raise ConflictError("Could not generate a unique coupon code")

    def create_coupon(self, data: CouponCreate, admin_id: Optional[int] = None, ip_address: Optional[str] = None) -> Coupon:
        with db_cursor() as cursor:
            if data.code:
                code = data.code.strip().upper()
                if self.repo.code_exists(code, cursor=cursor):
                    raise ConflictError(f"Coupon code {code} already exists")
            else:
                code = self._new_code(data.code_prefix, cursor)

            fields = data.model_dump(exclude={"code", "code_prefix"})
            fields["type"] = data.type.value
            fields["code"] = code
            coupon = self.repo.create(fields, cursor=cursor)

        self.system_logs.log_info(
            "COUPON_CREATED", f"Coupon {coupon.code} created",
            user_id=admin_id, ip_address=ip_address, metadata={"coupon_id": coupon.id},
        )
        return coupon

    def update_coupon(
        self,
        coupon_id: int,
        data: CouponUpdate,
        admin_id: Optional[int] = None,
        ip_address: Optional[str] = None,
    ) -> Coupon:
        fields = data.model_dump(exclude_unset=True)
        with db_cursor() as cursor:
            existing = self.repo.find_by_id(coupon_id, cursor=cursor)
            if not existing:
                raise NotFoundError("Coupon", coupon_id)

            if fields.get("code"):
                fields["code"] = fields["code"].strip().upper()
                if self.repo.code_exists(fields["code"], exclude_id=coupon_id, cursor=cursor):
                    raise ConflictError(f"Coupon code {fields['code']} already exists")
            if "type" in fields and fields["type"] is not None:
                fields["type"] = CouponType(fields["type"]).value

            coupon_type = CouponType(fields.get("type") or existing.type)
            value = fields.get("value", existing.value)
            if coupon_type == CouponType.PERCENTAGE and value is not None and value > 100:
                raise ValidationError("Percentage value cannot exceed 100")

            valid_from = fields.get("valid_from") or existing.valid_from
            valid_until = fields.get("valid_until") or existing.valid_until
            if as_utc(valid_until) <= as_utc(valid_from):
                raise ValidationError("valid_until must be after valid_from")

            coupon = self.repo.update(coupon_id, fields, cursor=cursor)

        self.system_logs.log_info(
            "COUPON_UPDATED", f"Coupon {coupon.code} updated",
            user_id=admin_id, ip_address=ip_address,
            metadata={"coupon_id": coupon_id, "fields": sorted(fields)},
        )
        return coupon

    def toggle_active(self, coupon_id: int, admin_id: Optional[int] = None) -> Coupon:
        coupon = self.get_coupon(coupon_id)
        updated = self.repo.update(coupon_id, {"is_active": not coupon.is_active})
        self.system_logs.log_info(
            "COUPON_UPDATED",
            f"Coupon {coupon.code} {'activated' if updated.is_active else 'deactivated'}",
            user_id=admin_id, metadata={"coupon_id": coupon_id},
        )
        return updated

    def delete_coupon(self, coupon_id: int, admin_id: Optional[int] = None, ip_address: Optional[str] = None) -> Coupon:
        with db_cursor() as cursor:
            coupon = self.repo.find_by_id(coupon_id, cursor=cursor)
            if not coupon:
                raise NotFoundError("Coupon", coupon_id)
            if self.repo.count_used_user_coupons(coupon_id, cursor=cursor):
                raise ConflictError("Coupon has been used and cannot be deleted")
            self.repo.delete(coupon_id, cursor=cursor)

        self.system_logs.log_info(
            "COUPON_DELETED", f"Coupon {coupon.code} deleted",
            user_id=admin_id, ip_address=ip_address, metadata={"coupon_id": coupon_id},
        )
        return coupon
