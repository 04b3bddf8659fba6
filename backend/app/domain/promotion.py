"""
Promotion Domain Models

Coupons, gift cards and campaigns, plus their write schemas.

Author: TM3
Date: 2025-11-20
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.domain.base import DomainModel


class CouponType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class GiftCardStatus(str, Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    EXPIRED = "EXPIRED"


class CampaignType(str, Enum):
    PERCENT = "PERCENT"
    FIXED = "FIXED"
    BOGO = "BOGO"
    FREE_SHIPPING = "FREE_SHIPPING"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Coupons
# ============================================================================

class Coupon(DomainModel):
    """
    Coupon domain model

    Fields:
        code: Upper-case unique code
        type: PERCENTAGE (value is a percent) or FIXED (value is an amount)
        min_order_amount: Smallest subtotal the coupon applies to
        max_discount: Cap for PERCENTAGE discounts
        max_usage / usage_count: Global redemption limit and counter
        valid_from / valid_until: Validity window
    """

    id: int
    code: str
    description: Optional[str] = None
    type: CouponType
    value: Decimal
    min_order_amount: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    max_usage: Optional[int] = None
    usage_count: int = 0
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.valid_until) < now

    def is_started(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.valid_from) <= now

    @property
    def is_exhausted(self) -> bool:
        return self.max_usage is not None and self.usage_count >= self.max_usage


class UserCoupon(DomainModel):
    id: int
    user_id: int
    coupon_id: int
    is_used: bool = False
    used_at: Optional[datetime] = None
    order_id: Optional[int] = None
    created_at: Optional[datetime] = None
    coupon: Optional[Coupon] = None


class CouponCreate(BaseModel):
    code: Optional[str] = Field(None, max_length=50, description="Generated when omitted")
    code_prefix: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    type: CouponType
    value: Decimal = Field(..., gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount: Optional[Decimal] = Field(None, gt=0)
    max_usage: Optional[int] = Field(None, ge=1)
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def check_rules(self):
        if self.type == CouponType.PERCENTAGE and self.value > 100:
            raise ValueError("percentage value cannot exceed 100")
        if as_utc(self.valid_until) <= as_utc(self.valid_from):
            raise ValueError("valid_until must be after valid_from")
        return self


class CouponUpdate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    type: Optional[CouponType] = None
    value: Optional[Decimal] = Field(None, gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount: Optional[Decimal] = Field(None, gt=0)
    max_usage: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)


class CouponClaimRequest(BaseModel):
    code: str = Field(..., min_length=1)


# ============================================================================
# Gift cards
# ============================================================================

class GiftCard(DomainModel):
    """
    Gift card domain model

    current_balance never exceeds initial_balance unless credited by an admin.
    """

    id: int
    code: str
    initial_balance: Decimal
    current_balance: Decimal
    status: GiftCardStatus = GiftCardStatus.ACTIVE
    user_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    last_used: Optional[datetime] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From users (JOIN)
    user_email: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.status == GiftCardStatus.EXPIRED:
            return True
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) < now

    @property
    def used_amount(self) -> Decimal:
        return self.initial_balance - self.current_balance

    def is_usable_by(self, user_id: Optional[int], now: Optional[datetime] = None) -> bool:
        return (
            self.status == GiftCardStatus.ACTIVE
            and (self.user_id is None or self.user_id == user_id)
            and not self.is_expired(now)
            and self.current_balance > 0
        )


class GiftCardTransaction(DomainModel):
    id: int
    gift_card_id: int
    order_id: Optional[int] = None
    amount: Decimal
    balance_after: Decimal
    description: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    gift_card_code: Optional[str] = None


class GiftCardCreate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    initial_balance: Decimal = Field(..., gt=0)
    user_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    note: Optional[str] = None


class GiftCardUpdate(BaseModel):
    initial_balance: Optional[Decimal] = Field(None, gt=0)
    status: Optional[GiftCardStatus] = None
    user_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    note: Optional[str] = None


class GiftCardTransactionCreate(BaseModel):
    gift_card_id: int
    amount: Decimal
    description: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("amount cannot be zero")
        return value


# ============================================================================
# Campaigns
# ============================================================================

class Campaign(DomainModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    type: CampaignType
    value: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    category_id: Optional[int] = None
    product_id: Optional[int] = None
    image_url: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_running(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.is_active and as_utc(self.start_date) <= now <= as_utc(self.end_date)


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: CampaignType
    value: Optional[Decimal] = Field(None, ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    category_id: Optional[int] = None
    product_id: Optional[int] = None
    image_url: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[CampaignType] = None
    value: Optional[Decimal] = Field(None, ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    category_id: Optional[int] = None
    product_id: Optional[int] = None
    image_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
