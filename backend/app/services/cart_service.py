"""
Cart Service
Shopping carts for signed-in users and guest sessions

A request is served from the user's cart when a valid token is present,
otherwise from the cart bound to the X-Session-Id header.

Author: TM3
Date: 2025-11-20
"""
import logging
from decimal import Decimal
from typing import Optional

from app.core.database import db_cursor
from app.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from app.domain.cart import Cart, CartItemAdd
from app.domain.product import Product, ProductVariant
from app.repositories.cart_repository import CartRepository
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


def resolve_unit_price(product: Product, variant: Optional[ProductVariant]) -> Decimal:
    """
    Price charged for one unit

    Variant price first, then the product base price, then the cheapest
    variant when the base price is unset.
    """
    if variant is not None:
        return variant.price
    if product.base_price and product.base_price > 0:
        return product.base_price
    if product.variants:
        return min(v.price for v in product.variants)
    return product.base_price or Decimal("0")


def resolve_variant(product: Product, variant_id: Optional[int]) -> Optional[ProductVariant]:
    """The product's variant with this id; ValidationError when it belongs elsewhere"""
    if variant_id is None:
        return None
    variant = product.find_variant(variant_id)
    if variant is None:
        raise ValidationError(f"Variant {variant_id} does not belong to product {product.id}")
    return variant


def check_stock(variant: Optional[ProductVariant], quantity: int):
    """Stock is tracked per variant; products without variants are not limited"""
    if variant is not None and quantity > variant.stock:
        raise InsufficientStockError(
            f"Insufficient stock: requested {quantity}, available {variant.stock}",
            details={"variant_id": variant.id, "available": variant.stock},
        )


class CartService:

    def __init__(self):
        self.carts = CartRepository()
        self.products = ProductRepository()

    def _get_or_create(self, user_id: Optional[int], session_id: Optional[str], cursor) -> Cart:
        if user_id is not None:
            cart = self.carts.find_by_user(user_id, cursor=cursor)
            if cart is None:
                cart = self.carts.create(user_id=user_id, cursor=cursor)
            return cart

        if session_id:
            cart = self.carts.find_by_session(session_id, cursor=cursor)
            if cart is None:
                cart = self.carts.create(session_id=session_id, cursor=cursor)
            return cart

        raise ValidationError("Sign in or send an X-Session-Id header to use the cart")

    def get_cart(self, user_id: Optional[int] = None, session_id: Optional[str] = None) -> Cart:
        with db_cursor() as cursor:
            return self._get_or_create(user_id, session_id, cursor)

    def add_item(
        self,
        data: CartItemAdd,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> Cart:
        with db_cursor() as cursor:
            product = self.products.find_by_id(data.product_id, cursor=cursor)
            if product is None or not product.published:
                raise NotFoundError("Product", data.product_id)

            variant = resolve_variant(product, data.variant_id)
            cart = self._get_or_create(user_id, session_id, cursor)

            line = cart.find_line(product.id, data.variant_id)
            new_quantity = data.quantity + (line.quantity if line else 0)
            check_stock(variant, new_quantity)

            if line:
                self.carts.update_item_quantity(line.id, new_quantity, cursor=cursor)
            else:
                self.carts.add_item(
                    cart.id, product.id, data.variant_id, data.quantity,
                    resolve_unit_price(product, variant), cursor=cursor
                )

            return self.carts.find_by_id(cart.id, cursor=cursor)

    def _owned_item(self, item_id: int, cart: Cart):
        for item in cart.items:
            if item.id == item_id:
                return item
        raise NotFoundError("Cart item", item_id)

    def update_item(
        self,
        item_id: int,
        quantity: int,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> Cart:
        """Set a line's quantity; 0 removes the line"""
        with db_cursor() as cursor:
            cart = self._get_or_create(user_id, session_id, cursor)
            item = self._owned_item(item_id, cart)

            if quantity <= 0:
                self.carts.delete_item(item.id, cursor=cursor)
            else:
                if item.variant_id is not None and item.stock is not None and quantity > item.stock:
                    raise InsufficientStockError(
                        f"Insufficient stock: requested {quantity}, available {item.stock}",
                        details={"variant_id": item.variant_id, "available": item.stock},
                    )
                self.carts.update_item_quantity(item.id, quantity, cursor=cursor)

            return self.carts.find_by_id(cart.id, cursor=cursor)

    def remove_item(self, item_id: int, user_id: Optional[int] = None, session_id: Optional[str] = None) -> Cart:
        with db_cursor() as cursor:
            cart = self._get_or_create(user_id, session_id, cursor)
            item = self._owned_item(item_id, cart)
            self.carts.delete_item(item.id, cursor=cursor)
            return self.carts.find_by_id(cart.id, cursor=cursor)

    def clear(self, user_id: Optional[int] = None, session_id: Optional[str] = None) -> Cart:
        with db_cursor() as cursor:
            cart = self._get_or_create(user_id, session_id, cursor)
            self.carts.clear(cart.id, cursor=cursor)
            return self.carts.find_by_id(cart.id, cursor=cursor)

    def merge_guest_cart(self, user_id: int, session_id: str) -> Optional[Cart]:
        """
        Move a guest cart's lines into the user's cart and delete the guest cart

        Lines for the same product/variant are summed. Returns the user cart,
        or None when there was no guest cart.
        """
        if not session_id:
            return None

        with db_cursor() as cursor:
            guest = self.carts.find_by_session(session_id, cursor=cursor)
            if guest is None:
                return None

            cart = self._get_or_create(user_id, None, cursor)
            if guest.id == cart.id:
                return cart

            for item in guest.items:
                line = cart.find_line(item.product_id, item.variant_id)
                if line:
                    self.carts.update_item_quantity(line.id, line.quantity + item.quantity, cursor=cursor)
                else:
                    self.carts.add_item(
                        cart.id, item.product_id, item.variant_id, item.quantity, item.price, cursor=cursor
                    )

            self.carts.delete(guest.id, cursor=cursor)
            logger.info(f"Merged guest cart {guest.id} ({len(guest.items)} lines) into cart {cart.id}")
            return self.carts.find_by_id(cart.id, cursor=cursor)
