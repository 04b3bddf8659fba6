"""
Cart domain models
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.base import DomainModel


class CartItem(DomainModel):
    id: int
    cart_id: int
    product_id: int
    variant_id: Optional[int] = None
    quantity: int
    price: Decimal

    # From product / variant (JOIN)
    product_name: Optional[str] = None
    product_slug: Optional[str] = None
    image_url: Optional[str] = None
    variant_label: Optional[str] = None
    stock: Optional[int] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['line_total'] = float(self.line_total)
        return data


class Cart(DomainModel):
    """
    Cart owned by a user (user_id) or a guest (session_id)
    """
    id: int
    user_id: Optional[int] = None
    session_id: Optional[str] = None
    items: List[CartItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_line(self, product_id: int, variant_id: Optional[int]) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id and item.variant_id == variant_id:
                return item
        return None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['items'] = [item.to_dict() for item in self.items]
        data['item_count'] = self.item_count
        data['subtotal'] = float(self.subtotal)
        return data


class CartItemAdd(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the item")
