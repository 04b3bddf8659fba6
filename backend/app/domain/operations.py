"""
Domain models for stock reservations, returns and logs
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.domain.base import DomainModel


# ============================================================================
# Stock reservations
# ============================================================================

class ReservationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CONVERTED = "CONVERTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class StockReservation(DomainModel):
    id: int
    variant_id: int
    product_id: int
    quantity: int
    user_id: Optional[int] = None
    session_id: str
    status: ReservationStatus
    expires_at: datetime
    order_id: Optional[int] = None
    created_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


class ReserveRequest(BaseModel):
    variant_id: int
    quantity: int = Field(..., gt=0)
    session_id: Optional[str] = None
    minutes: Optional[int] = Field(None, ge=1, le=24 * 60)


class ConvertRequest(BaseModel):
    reservation_id: Optional[int] = None
    session_id: Optional[str] = None
    order_id: Optional[int] = None


class CancelReservationRequest(BaseModel):
    reservation_id: Optional[int] = None
    session_id: Optional[str] = None


# ============================================================================
# Returns
# ============================================================================

class ReturnStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REFUNDED = "REFUNDED"
    COMPLETED = "COMPLETED"


class ReturnType(str, Enum):
    RETURN = "RETURN"
    EXCHANGE = "EXCHANGE"


RETURN_STATUS_TRANSITIONS: Dict[ReturnStatus, List[ReturnStatus]] = {
    ReturnStatus.PENDING: [ReturnStatus.APPROVED, ReturnStatus.REJECTED],
    ReturnStatus.APPROVED: [ReturnStatus.REFUNDED, ReturnStatus.COMPLETED],
    ReturnStatus.REFUNDED: [ReturnStatus.COMPLETED],
    ReturnStatus.REJECTED: [],
    ReturnStatus.COMPLETED: [],
}


def is_valid_return_transition(current: ReturnStatus, new: ReturnStatus) -> bool:
    return new in RETURN_STATUS_TRANSITIONS.get(ReturnStatus(current), [])


class ReturnRequest(DomainModel):
    id: int
    user_id: int
    order_id: int
    order_item_id: int
    type: ReturnType = ReturnType.RETURN
    status: ReturnStatus = ReturnStatus.PENDING
    reason: str
    description: Optional[str] = None
    quantity: int = 1
    refund_amount: Optional[Decimal] = None
    refund_method: Optional[str] = None
    refund_date: Optional[datetime] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # JOINed context for admin screens
    order_number: Optional[str] = None
    product_name: Optional[str] = None
    item_price: Optional[Decimal] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None


class ReturnCreate(BaseModel):
    order_id: int
    order_item_id: int
    reason: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: int = Field(1, ge=1)
    type: ReturnType = ReturnType.RETURN


class AdminReturnCreate(ReturnCreate):
    user_id: int


class ReturnStatusUpdate(BaseModel):
    status: ReturnStatus
    admin_notes: Optional[str] = None
    refund_amount: Optional[Decimal] = Field(None, gt=0)
    refund_method: Optional[str] = None


# ============================================================================
# System and transaction logs
# ============================================================================

class SystemLogType(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class SystemLog(DomainModel):
    id: int
    type: SystemLogType
    action: str
    description: str
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    metadata: Optional[dict] = None
    created_at: Optional[datetime] = None

    # From users (JOIN)
    user_email: Optional[str] = None


class TransactionType(str, Enum):
    COUPON_USAGE = "COUPON_USAGE"
    GIFT_CARD_USAGE = "GIFT_CARD_USAGE"
    CAMPAIGN_USAGE = "CAMPAIGN_USAGE"
    CHECKOUT = "CHECKOUT"


class TransactionStatus(str, Enum):
    INITIATED = "INITIATED"
    RESERVED = "RESERVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class TransactionLog(DomainModel):
    id: int
    type: TransactionType
    status: TransactionStatus
    user_id: Optional[int] = None
    order_id: Optional[int] = None
    reference_id: Optional[int] = None
    amount: Optional[Decimal] = None
    idempotency_key: Optional[str] = None
    metadata: Optional[dict] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
