"""
Checkout request / result models
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.base import money


class CheckoutRequest(BaseModel):
    cart_id: Optional[int] = None
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    payment_method: Optional[str] = None
    coupon_id: Optional[int] = None
    gift_card_code: Optional[str] = None
    notes: Optional[str] = None


class CheckoutTotals(BaseModel):
    """
    Amounts for one checkout

    total = subtotal + shipping + tax - discount - gift_card
    """
    subtotal: Decimal = Field(Decimal("0.00"))
    shipping: Decimal = Field(Decimal("0.00"))
    discount: Decimal = Field(Decimal("0.00"))
    tax: Decimal = Field(Decimal("0.00"))
    gift_card: Decimal = Field(Decimal("0.00"))

    @property
    def total(self) -> Decimal:
        return money(self.subtotal + self.shipping + self.tax - self.discount - self.gift_card)

    @property
    def amount_before_gift_card(self) -> Decimal:
        return money(self.subtotal + self.shipping + self.tax - self.discount)

    def to_dict(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "shipping": float(self.shipping),
            "discount": float(self.discount),
            "tax": float(self.tax),
            "gift_card": float(self.gift_card),
            "total": float(self.total),
        }


class CheckoutResult(BaseModel):
    order_id: int
    order_number: str
    total: Decimal
    payment_id: Optional[int] = None
    replayed: bool = False

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "total": float(self.total),
            "payment_id": self.payment_id,
            "replayed": self.replayed,
        }
