"""
Order Domain Models

Represents order-related entities in the storefront.
These are the single source of truth for order data structure.

Author: TM3
Date: 2025-10-17
Updated: 2025-11-20 (storefront checkout, timeline, payments)
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.domain.base import DomainModel
from app.domain.order_status import OrderStatus, get_valid_next_statuses


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class OrderItem(DomainModel):
    """
    Order Item domain model - represents a line item in an order

    Fields:
        id: Internal order item ID
        order_id: Parent order ID
        product_id: Reference to product catalog (NULL once the product is deleted)
        variant_id: Purchased variant (optional)
        product_name: Product name at time of order
        variant_label: Variant options at time of order
        quantity: Number of units ordered
        price: Unit price at time of order
        total: price * quantity
    """

    id: int = Field(..., description="Order item ID")
    order_id: int = Field(..., description="Parent order ID")
    product_id: Optional[int] = Field(None, description="Product catalog ID")
    variant_id: Optional[int] = Field(None, description="Variant ID")
    product_name: str = Field(..., description="Product name at order time")
    variant_label: Optional[str] = Field(None, description="Variant options at order time")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    price: Decimal = Field(..., description="Price per unit", ge=0)
    total: Decimal = Field(..., description="Total for line item", ge=0)

    # From product catalog (optional, from JOIN)
    product_slug: Optional[str] = Field(None, description="Current product slug")


class TimelineEntry(DomainModel):
    id: int
    order_id: int
    status: str
    description: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


class Payment(DomainModel):
    id: int
    order_id: int
    amount: Decimal
    method: str
    status: str
    provider_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None


class OrderCustomer(DomainModel):
    """Customer (lightweight, for order context)"""
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class Order(DomainModel):
    """
    Order domain model - represents a customer order

    This model matches the database schema and provides type safety
    for all order-related operations.
    """

    id: int = Field(..., description="Order ID")
    order_number: str = Field(..., description="Human readable order number")
    user_id: Optional[int] = Field(None, description="Customer user ID")

    subtotal: Decimal = Field(Decimal("0"), description="Sum of line totals", ge=0)
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    gift_card_amount: Decimal = Field(Decimal("0"), ge=0)
    total: Decimal = Field(..., description="Amount charged", ge=0)

    status: OrderStatus = Field(OrderStatus.PENDING, description="Order status")

    coupon_id: Optional[int] = None
    gift_card_id: Optional[int] = None
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    tracking_number: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    customer: Optional[OrderCustomer] = None
    items: List[OrderItem] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    payments: List[Payment] = Field(default_factory=list)
    shipping_address: Optional[dict] = None
    billing_address: Optional[dict] = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def has_completed_payment(self) -> bool:
        return any(p.status == PaymentStatus.COMPLETED.value for p in self.payments)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['status'] = self.status.value
        data['item_count'] = self.item_count
        data['next_statuses'] = [s.value for s in get_valid_next_statuses(self.status)]
        return data


# ============================================================================
# Write schemas
# ============================================================================

class OrderItemInput(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    items: List[OrderItemInput] = Field(default_factory=list)
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    coupon_code: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str
    note: Optional[str] = None
    tracking_number: Optional[str] = None


class AdminNotesUpdate(BaseModel):
    admin_notes: Optional[str] = None


class TimelineEntryCreate(BaseModel):
    status: Optional[str] = None
    description: str = Field(..., min_length=1)
