"""
Checkout Service
Turns a user's cart into a paid order

Flow:
    1. Replay: a COMPLETED CHECKOUT transaction log with the same idempotency
       key returns the original result without touching anything; a RESERVED
       one means the same checkout is still running (409).
    2. Validate cart, addresses, coupon and gift card (read only).
    3. Open a RESERVED CHECKOUT log for the key, then reserve the coupon and
       gift card as RESERVED transaction logs.
    4. One DB transaction: order + items + timeline, stock decrement,
       coupon redemption, gift card debit, cart clear.
    5. Record the payment, move the order to PAID and complete the logs.

Any failure after step 3 moves the reservation logs to FAILED and re-raises.

Author: TM3
Date: 2025-11-21
"""
import logging
import time
import uuid
from decimal import Decimal
from typing import List, Optional

import psycopg2

from app.core.config import settings
from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.base import money
from app.domain.cart import Cart
from app.domain.checkout import CheckoutRequest, CheckoutResult, CheckoutTotals
from app.domain.operations import TransactionStatus, TransactionType
from app.domain.order import PaymentStatus
from app.domain.order_status import OrderStatus
from app.domain.promotion import Coupon, GiftCard, UserCoupon
from app.repositories.cart_repository import CartRepository
from app.repositories.coupon_repository import CouponRepository
from app.repositories.gift_card_repository import GiftCardRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.user_repository import AddressRepository
from app.services.coupon_service import calculate_discount
from app.services.gift_card_service import GiftCardService
from app.services.order_service import OrderService
from app.services.stock_service import StockService
from app.services.system_log_service import SystemLogService
from app.services.transaction_log_service import TransactionLogService
from app.utils.codes import sanitize_code_input

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("cart_id", "shipping_address_id", "billing_address_id", "payment_method")


def calculate_totals(subtotal, discount=Decimal("0"), gift_card_balance=None) -> CheckoutTotals:
    """
    Checkout amounts

    tax = (subtotal - discount) * CHECKOUT_TAX_RATE
    The gift card covers at most what is still due after shipping, tax and discount.
    """
    subtotal = money(subtotal)
    discount = money(discount)
    totals = CheckoutTotals(
        subtotal=subtotal,
        shipping=money(settings.CHECKOUT_SHIPPING_COST),
        discount=discount,
        tax=money((subtotal - discount) * Decimal(str(settings.CHECKOUT_TAX_RATE))),
    )
    if gift_card_balance is not None:
        due = max(Decimal("0.00"), totals.amount_before_gift_card)
        totals.gift_card = money(min(Decimal(str(gift_card_balance)), due))
    return totals


class CheckoutService:

    def __init__(self):
        self.carts = CartRepository()
        self.addresses = AddressRepository()
        self.orders = OrderRepository()
        self.coupons = CouponRepository()
        self.gift_cards = GiftCardRepository()
        self.order_service = OrderService()
        self.gift_card_service = GiftCardService()
        self.stock = StockService()
        self.transactions = TransactionLogService()
        self.system_logs = SystemLogService()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def find_replay(self, idempotency_key: str) -> Optional[CheckoutResult]:
        """
        Result of an earlier checkout with the same key, when it completed

        Raises ConflictError while that checkout is still running.
        """
        log = self.transactions.find_by_idempotency_key(idempotency_key, type=TransactionType.CHECKOUT)
        if not log:
            return None
        if log.status == TransactionStatus.RESERVED:
            raise ConflictError("A checkout with this idempotency key is already in progress")
        if log.status != TransactionStatus.COMPLETED or not log.order_id:
            return None
        metadata = log.metadata or {}
        logger.info(f"Checkout replay for idempotency key {idempotency_key}: order {log.order_id}")
        return CheckoutResult(
            order_id=log.order_id,
            order_number=metadata.get("order_number", ""),
            total=Decimal(str(metadata.get("total", "0"))),
            replayed=True,
        )

    def load_cart(self, user_id: int, data: CheckoutRequest) -> Cart:
        missing = [field for field in REQUIRED_FIELDS if not getattr(data, field)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        cart = self.carts.find_by_id(data.cart_id)
        if not cart or cart.user_id != user_id:
            raise NotFoundError("Cart", data.cart_id)
        if cart.is_empty:
            raise ValidationError("Cart is empty")

        for address_id in (data.shipping_address_id, data.billing_address_id):
            if not self.addresses.find_by_id(address_id, user_id=user_id):
                raise NotFoundError("Address", address_id)
        return cart

    def check_user_coupon(self, user_id: int, coupon_id: int, subtotal) -> UserCoupon:
        """The user's unused, currently valid wallet coupon"""
        user_coupon = self.coupons.find_user_coupon(user_id, coupon_id)
        coupon = self.coupons.find_by_id(coupon_id) if user_coupon else None
        if not user_coupon or not coupon or not coupon.is_active:
            raise ValidationError("Coupon not found or does not belong to you")
        if user_coupon.is_used:
            raise ValidationError("This coupon has already been used")
        if not coupon.is_started():
            raise ValidationError("Coupon is not valid yet")
        if coupon.is_expired():
            raise ValidationError("Coupon has expired")
        if coupon.min_order_amount is not None and Decimal(str(subtotal)) < coupon.min_order_amount:
            raise ValidationError(f"Minimum order amount for this coupon is {money(coupon.min_order_amount)}")
        user_coupon.coupon = coupon
        return user_coupon

    def check_gift_card(self, user_id: int, code: str) -> GiftCard:
        card = self.gift_cards.find_by_code(sanitize_code_input(code))
        if not card or not card.is_usable_by(user_id):
            raise ValidationError("Invalid gift card code")
        return card

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def process_payment(
        self,
        user_id: int,
        data: CheckoutRequest,
        idempotency_key: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Run a checkout for the user's cart

        Args:
            user_id: Authenticated buyer
            data: Cart, addresses, payment method and optional promotions
            idempotency_key: X-Idempotency-Key header; a uuid4 when absent

        Returns:
            CheckoutResult with order id, number, total and payment id

        Raises:
            ValidationError: Missing fields, empty cart, unusable promotion, negative total
            NotFoundError: Cart or address not owned by the user
            ConflictError: A checkout with the same key is still running
        """
        idempotency_key = idempotency_key or str(uuid.uuid4())
        replay = self.find_replay(idempotency_key)
        if replay:
            return replay

        cart = self.load_cart(user_id, data)
        subtotal = cart.subtotal

        user_coupon = self.check_user_coupon(user_id, data.coupon_id, subtotal) if data.coupon_id else None
        coupon: Optional[Coupon] = user_coupon.coupon if user_coupon else None
        discount = calculate_discount(coupon, subtotal) if coupon else Decimal("0.00")

        card = self.check_gift_card(user_id, data.gift_card_code) if data.gift_card_code else None
        totals = calculate_totals(subtotal, discount, card.current_balance if card else None)

        log_ids = [self.open_checkout(user_id, idempotency_key, cart, totals)]
        log_ids += self.reserve_promotions(user_id, idempotency_key, user_coupon, card, totals)

        if totals.total < 0:
            self.transactions.mark_all(log_ids, TransactionStatus.CANCELLED, error_message="Negative total")
            raise ValidationError("Total amount cannot be negative")

        try:
            order_id, order_number = self.create_order(user_id, data, cart, user_coupon, card, totals)
            payment = self.record_payment(order_id, data.payment_method, totals.total)
        except Exception as e:
            logger.error(f"Checkout failed for user {user_id} (key {idempotency_key}): {e}")
            self.transactions.mark_all(log_ids, TransactionStatus.FAILED, error_message=str(e))
            raise

        self.transactions.mark_all(
            log_ids,
            TransactionStatus.COMPLETED,
            order_id=order_id,
            metadata={"order_number": order_number, "total": str(totals.total)},
        )
        self.system_logs.log_info(
            "CHECKOUT_COMPLETED",
            f"Order {order_number} paid: {totals.total}",
            user_id=user_id,
            ip_address=ip_address,
            metadata={"order_id": order_id, "idempotency_key": idempotency_key, **totals.to_dict()},
        )
        return CheckoutResult(order_id=order_id, order_number=order_number, total=totals.total, payment_id=payment.id)

    def open_checkout(self, user_id: int, idempotency_key: str, cart: Cart, totals: CheckoutTotals) -> int:
        """RESERVED checkout log for the key; a concurrent duplicate hits the unique index"""
        try:
            log = self.transactions.create(
                TransactionType.CHECKOUT, TransactionStatus.RESERVED,
                user_id=user_id, reference_id=cart.id, amount=totals.total,
                idempotency_key=idempotency_key,
            )
        except psycopg2.IntegrityError:
            raise ConflictError("A checkout with this idempotency key is already in progress")
        return log.id

    def reserve_promotions(
        self,
        user_id: int,
        idempotency_key: str,
        user_coupon: Optional[UserCoupon],
        card: Optional[GiftCard],
        totals: CheckoutTotals,
    ) -> List[int]:
        log_ids = []
        if user_coupon:
            log = self.transactions.create(
                TransactionType.COUPON_USAGE, TransactionStatus.RESERVED,
                user_id=user_id, reference_id=user_coupon.coupon_id, amount=totals.discount,
                idempotency_key=idempotency_key,
                metadata={"user_coupon_id": user_coupon.id, "code": user_coupon.coupon.code},
            )
            log_ids.append(log.id)
        if card and totals.gift_card > 0:
            log = self.transactions.create(
                TransactionType.GIFT_CARD_USAGE, TransactionStatus.RESERVED,
                user_id=user_id, reference_id=card.id, amount=totals.gift_card,
                idempotency_key=idempotency_key,
                metadata={"code": card.code},
            )
            log_ids.append(log.id)
        return log_ids

    def create_order(
        self,
        user_id: int,
        data: CheckoutRequest,
        cart: Cart,
        user_coupon: Optional[UserCoupon],
        card: Optional[GiftCard],
        totals: CheckoutTotals,
    ):
        """Everything that must commit together; returns (order_id, order_number)"""
        with db_cursor() as cursor:
            order_number = self.order_service.new_order_number(cursor)
            order_id = self.orders.create({
                "order_number": order_number,
                "user_id": user_id,
                "subtotal": totals.subtotal,
                "shipping_cost": totals.shipping,
                "tax_amount": totals.tax,
                "discount_amount": totals.discount,
                "gift_card_amount": totals.gift_card,
                "total": totals.total,
                "status": OrderStatus.PENDING.value,
                "coupon_id": user_coupon.coupon_id if user_coupon else None,
                "gift_card_id": card.id if card and totals.gift_card > 0 else None,
                "shipping_address_id": data.shipping_address_id,
                "billing_address_id": data.billing_address_id,
                "payment_method": data.payment_method,
                "notes": data.notes,
            }, cursor=cursor)

            for item in cart.items:
                self.orders.add_item(order_id, {
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "product_name": item.product_name or f"Product {item.product_id}",
                    "variant_label": item.variant_label,
                    "quantity": item.quantity,
                    "price": item.price,
                    "total": item.line_total,
                }, cursor=cursor)

            self.orders.add_timeline(
                order_id, OrderStatus.PENDING.value, "Order created, awaiting payment", cursor=cursor
            )
            self.stock.decrement_for_items(cart.items, cursor)

            if user_coupon:
                if not self.coupons.mark_user_coupon_used(user_coupon.id, order_id, cursor=cursor):
                    raise ValidationError("This coupon has already been used")
                self.coupons.increment_usage(user_coupon.coupon_id, cursor=cursor)

            if card and totals.gift_card > 0:
                locked = self.gift_cards.find_by_id(card.id, for_update=True, cursor=cursor)
                self.gift_card_service.apply_transaction(
                    locked, -totals.gift_card,
                    description=f"Order {order_number}", order_id=order_id, created_by=user_id,
                    cursor=cursor,
                )

            self.carts.clear(cart.id, cursor=cursor)

        logger.info(f"Order {order_number} created from cart {cart.id}")
        return order_id, order_number

    def record_payment(self, order_id: int, method: str, amount):
        with db_cursor() as cursor:
            payment = self.orders.create_payment(
                order_id, amount, method, PaymentStatus.COMPLETED.value,
                provider_payment_id=f"TR{int(time.time() * 1000)}", cursor=cursor,
            )
            self.orders.update_status(order_id, OrderStatus.PAID.value, cursor=cursor)
            self.orders.add_timeline(order_id, OrderStatus.PAID.value, "Payment received", cursor=cursor)
        return payment
