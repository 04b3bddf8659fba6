"""
Unit tests for CartService and its pricing helpers

Author: TM3
Date: 2025-11-21
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from app.domain.cart import Cart, CartItem, CartItemAdd
from app.domain.product import Product, ProductVariant
from app.services.cart_service import CartService, resolve_unit_price, resolve_variant


def make_product(**overrides):
    data = dict(
        id=10, name="Rain Jacket", slug="rain-jacket", base_price=Decimal("0"),
        variants=[
            ProductVariant(id=100, product_id=10, price=Decimal("49.90"), stock=3, options={"Size": "S"}),
            ProductVariant(id=101, product_id=10, price=Decimal("44.90"), stock=0, options={"Size": "M"}),
        ],
    )
    data.update(overrides)
    return Product(**data)


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def service(cursor):
    with patch("app.services.cart_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = cursor
        carts = CartService()
        carts.carts = MagicMock()
        carts.products = MagicMock()
        yield carts


class TestPricing:

    def test_variant_price_wins(self):
        product = make_product()
        assert resolve_unit_price(product, product.variants[0]) == Decimal("49.90")

    def test_cheapest_variant_when_base_price_unset(self):
        assert resolve_unit_price(make_product(), None) == Decimal("44.90")

    def test_base_price_without_variants(self):
        assert resolve_unit_price(make_product(base_price=Decimal("15"), variants=[]), None) == Decimal("15")

    def test_foreign_variant(self):
        with pytest.raises(ValidationError):
            resolve_variant(make_product(), 999)


class TestCart:

    def test_owner_is_required(self, service):
        with pytest.raises(ValidationError, match="X-Session-Id"):
            service.get_cart()

    def test_guest_cart_is_created_on_first_use(self, service, cursor):
        service.carts.find_by_session.return_value = None
        service.carts.create.return_value = Cart(id=3, session_id="guest-1")

        cart = service.get_cart(session_id="guest-1")

        service.carts.create.assert_called_once_with(session_id="guest-1", cursor=cursor)
        assert cart.id == 3

    def test_add_new_line_uses_variant_price(self, service, cursor):
        service.products.find_by_id.return_value = make_product()
        service.carts.find_by_user.return_value = Cart(id=3, user_id=7)

        service.add_item(CartItemAdd(product_id=10, variant_id=100, quantity=2), user_id=7)

        service.carts.add_item.assert_called_once_with(3, 10, 100, 2, Decimal("49.90"), cursor=cursor)

    def test_existing_line_is_incremented_within_stock(self, service):
        service.products.find_by_id.return_value = make_product()
        service.carts.find_by_user.return_value = Cart(id=3, user_id=7, items=[
            CartItem(id=1, cart_id=3, product_id=10, variant_id=100, quantity=2, price=Decimal("49.90")),
        ])

        with pytest.raises(InsufficientStockError) as exc:
            service.add_item(CartItemAdd(product_id=10, variant_id=100, quantity=2), user_id=7)
        assert exc.value.details == {"variant_id": 100, "available": 3}

    def test_unpublished_product_cannot_be_added(self, service):
        service.products.find_by_id.return_value = make_product(published=False)
        with pytest.raises(NotFoundError):
            service.add_item(CartItemAdd(product_id=10), user_id=7)

    def test_zero_quantity_removes_line(self, service, cursor):
        service.carts.find_by_user.return_value = Cart(id=3, user_id=7, items=[
            CartItem(id=1, cart_id=3, product_id=10, quantity=2, price=Decimal("5")),
        ])

        service.update_item(1, 0, user_id=7)

        service.carts.delete_item.assert_called_once_with(1, cursor=cursor)

    def test_item_of_another_cart_is_not_found(self, service):
        service.carts.find_by_user.return_value = Cart(id=3, user_id=7)
        with pytest.raises(NotFoundError):
            service.remove_item(55, user_id=7)


class TestMergeGuestCart:

    def test_lines_are_summed_and_guest_cart_deleted(self, service, cursor):
        # Arrange
        service.carts.find_by_session.return_value = Cart(id=9, session_id="guest-1", items=[
            CartItem(id=20, cart_id=9, product_id=10, variant_id=100, quantity=1, price=Decimal("49.90")),
            CartItem(id=21, cart_id=9, product_id=11, quantity=2, price=Decimal("5.00")),
        ])
        service.carts.find_by_user.return_value = Cart(id=3, user_id=7, items=[
            CartItem(id=1, cart_id=3, product_id=10, variant_id=100, quantity=2, price=Decimal("49.90")),
        ])

        # Act
        service.merge_guest_cart(7, "guest-1")

        # Assert
        service.carts.update_item_quantity.assert_called_once_with(1, 3, cursor=cursor)
        service.carts.add_item.assert_called_once_with(3, 11, None, 2, Decimal("5.00"), cursor=cursor)
        service.carts.delete.assert_called_once_with(9, cursor=cursor)

    def test_no_guest_cart(self, service):
        service.carts.find_by_session.return_value = None
        assert service.merge_guest_cart(7, "guest-1") is None
