"""
Order Service
Order creation, listing and status management

Every status change goes through domain.order_status; side effects of a
transition (stock restore, payment refund) happen in the same transaction
as the status update.

Author: TM3
Date: 2025-10-17
Updated: 2025-11-21 (storefront orders, status machine, timeline)
"""
import logging
import random
import time
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.base import money
from app.domain.order import (
    Order, OrderCreate, OrderStatusUpdate, PaymentStatus, TimelineEntry, TimelineEntryCreate,
)
from app.domain.order_status import (
    OrderStatus, can_customer_cancel, get_next_recommended_status, get_valid_next_statuses,
    is_valid_transition, parse_status, status_label,
)
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository
from app.repositories.user_repository import AddressRepository
from app.services.cart_service import check_stock, resolve_unit_price, resolve_variant
from app.services.coupon_service import CouponService
from app.services.stock_service import StockService
from app.services.system_log_service import SystemLogService

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
TRACKED_STATUSES = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def generate_order_number() -> str:
    """ORD-{last 6 digits of the ms timestamp}-{4 digit random}"""
    timestamp = str(int(time.time() * 1000))
    return f"ORD-{timestamp[-6:]}-{random.randint(0, 9999):04d}"


class OrderService:

    def __init__(self):
        self.repo = OrderRepository()
        self.products = ProductRepository()
        self.addresses = AddressRepository()
        self.coupons = CouponService()
        self.stock = StockService()
        self.system_logs = SystemLogService()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def new_order_number(self, cursor) -> str:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number()
            if not self.repo.order_number_exists(number, cursor=cursor):
                return number
        raise ConflictError("Could not generate a unique order number")

    def build_lines(self, items, cursor) -> Tuple[List[Dict], Decimal]:
        """
        Price order lines from the current catalog

        Args:
            items: objects or dicts with product_id, variant_id, quantity

        Returns:
            (line dicts ready for OrderRepository.add_item, subtotal)
        """
        lines = []
        subtotal = Decimal("0.00")
        for item in items:
            product = self.products.find_by_id(item.product_id, cursor=cursor)
            if product is None:
                raise NotFoundError("Product", item.product_id)

            variant = resolve_variant(product, item.variant_id)
            check_stock(variant, item.quantity)

            price = money(resolve_unit_price(product, variant))
            total = money(price * item.quantity)
            subtotal += total
            lines.append({
                "product_id": product.id,
                "variant_id": item.variant_id,
                "product_name": product.name,
                "variant_label": variant.label if variant else None,
                "quantity": item.quantity,
                "price": price,
                "total": total,
            })
        return lines, money(subtotal)

    def create_order(self, user_id: int, data: OrderCreate) -> Order:
        """
        Create a PENDING order from explicit items

        Stock is decremented and the coupon usage counted in the same
        transaction as the order insert.
        """
        if not data.items:
            raise ValidationError("Order items are required")

        with db_cursor() as cursor:
            for address_id in (data.shipping_address_id, data.billing_address_id):
                if address_id is not None and not self.addresses.find_by_id(address_id, user_id=user_id, cursor=cursor):
                    raise NotFoundError("Address", address_id)

            lines, subtotal = self.build_lines(data.items, cursor)

            coupon = None
            discount = Decimal("0.00")
            if data.coupon_code:
                coupon, discount = self.coupons.apply_code(data.coupon_code, subtotal, cursor=cursor)

            order_number = self.new_order_number(cursor)
            order_id = self.repo.create({
                "order_number": order_number,
                "user_id": user_id,
                "subtotal": subtotal,
                "discount_amount": discount,
                "total": money(subtotal - discount),
                "status": OrderStatus.PENDING.value,
                "coupon_id": coupon.id if coupon else None,
                "shipping_address_id": data.shipping_address_id,
                "billing_address_id": data.billing_address_id,
                "payment_method": data.payment_method or "Not specified",
                "notes": data.notes,
            }, cursor=cursor)

            for line in lines:
                self.repo.add_item(order_id, line, cursor=cursor)

            self.stock.decrement_for_items(lines, cursor)
            if coupon:
                self.coupons.repo.increment_usage(coupon.id, cursor=cursor)

            self.repo.add_timeline(order_id, OrderStatus.PENDING.value, "Order created", cursor=cursor)
            order = self.repo.find_by_id(order_id, cursor=cursor)

        logger.info(f"Order {order_number} created for user {user_id}: total {order.total}")
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_orders(self, **filters) -> Tuple[List[Order], int]:
        return self.repo.find_all(**filters)

    def list_user_orders(self, user_id: int, status: Optional[str] = None, limit: int = 10, offset: int = 0):
        return self.repo.find_all(user_id=user_id, status=status, limit=limit, offset=offset)

    def get_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        """Admin lookup, or a user's own order when user_id is given"""
        order = self.repo.find_by_id(order_id, user_id=user_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    def next_statuses(self, order_id: int) -> dict:
        order = self.get_order(order_id)
        recommended = get_next_recommended_status(order.status)
        return {
            "current_status": order.status.value,
            "current_label": status_label(order.status),
            "valid_next_statuses": [
                {"value": s.value, "label": status_label(s)} for s in get_valid_next_statuses(order.status)
            ],
            "recommended": recommended.value if recommended else None,
        }

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def _check_transition(self, order: Order, new_status: OrderStatus):
        if not is_valid_transition(order.status, new_status):
            allowed = ", ".join(s.value for s in get_valid_next_statuses(order.status)) or "none"
            raise ValidationError(
                f"Invalid status transition from {order.status.value} to {new_status.value}. "
                f"Allowed: {allowed}"
            )

        if new_status == OrderStatus.PAID and not order.has_completed_payment:
            raise ValidationError("Order cannot be marked as PAID without a completed payment")

        if new_status == OrderStatus.CANCELLED and order.status in (OrderStatus.COMPLETED, OrderStatus.DELIVERED):
            raise ValidationError(f"A {order.status.value} order cannot be cancelled")

    def update_status(
        self,
        order_id: int,
        data: OrderStatusUpdate,
        admin_id: Optional[int] = None,
        ip_address: Optional[str] = None,
    ) -> Order:
        """
        Move an order to a new status

        Args:
            order_id: Order to update
            data: New status, optional note and tracking number
            admin_id: Acting admin (timeline author, system log user)

        Raises:
            ValidationError: Unknown status or transition not allowed
            NotFoundError: Order does not exist
        """
        new_status = parse_status(data.status)
        if new_status is None:
            raise ValidationError(f"Invalid order status: {data.status}")

        with db_cursor() as cursor:
            order = self.repo.find_by_id(order_id, cursor=cursor)
            if not order:
                raise NotFoundError("Order", order_id)

            old_status = order.status
            self._check_transition(order, new_status)

            if new_status in TRACKED_STATUSES and not (data.tracking_number or order.tracking_number):
                logger.warning(f"Order {order.order_number} moved to {new_status.value} without a tracking number")

            self.repo.update_status(order_id, new_status.value, tracking_number=data.tracking_number, cursor=cursor)

            if new_status == OrderStatus.CANCELLED:
                self.stock.restore_for_items(order.items, cursor)
            elif new_status == OrderStatus.REFUNDED:
                self.repo.update_payments_status(order_id, PaymentStatus.REFUNDED.value, cursor=cursor)

            description = f"Order status changed from {old_status.value} to {new_status.value}"
            if data.note:
                description = f"{description}: {data.note}"
            self.repo.add_timeline(order_id, new_status.value, description, created_by=admin_id, cursor=cursor)

            updated = self.repo.find_by_id(order_id, cursor=cursor)

        self.system_logs.log_info(
            "ORDER_STATUS_UPDATED",
            f"Order {order.order_number} status changed from {old_status.value} to {new_status.value}",
            user_id=admin_id,
            ip_address=ip_address,
            metadata={"order_id": order_id, "from": old_status.value, "to": new_status.value},
        )
        return updated

    def cancel_own(self, order_id: int, user_id: int) -> Order:
        with db_cursor() as cursor:
            order = self.repo.find_by_id(order_id, user_id=user_id, cursor=cursor)
            if not order:
                raise NotFoundError("Order", order_id)
            if not can_customer_cancel(order.status):
                raise ValidationError(f"A {order.status.value} order cannot be cancelled")

            self.repo.update_status(order_id, OrderStatus.CANCELLED.value, cursor=cursor)
            self.stock.restore_for_items(order.items, cursor)
            self.repo.add_timeline(
                order_id, OrderStatus.CANCELLED.value, "Order cancelled by customer",
                created_by=user_id, cursor=cursor,
            )
            updated = self.repo.find_by_id(order_id, cursor=cursor)

        logger.info(f"Order {order.order_number} cancelled by user {user_id}")
        return updated

    def update_admin_notes(self, order_id: int, admin_notes: Optional[str]) -> Order:
        if not self.repo.update_admin_notes(order_id, admin_notes):
            raise NotFoundError("Order", order_id)
        return self.get_order(order_id)

    def delete_order(self, order_id: int, admin_id: Optional[int] = None) -> Order:
        with db_cursor() as cursor:
            order = self.repo.find_by_id(order_id, cursor=cursor)
            if not order:
                raise NotFoundError("Order", order_id)
            if order.status != OrderStatus.CANCELLED:
                self.stock.restore_for_items(order.items, cursor)
            self.repo.delete(order_id, cursor=cursor)

        self.system_logs.log_warning(
            "ORDER_DELETED", f"Order {order.order_number} deleted",
            user_id=admin_id, metadata={"order_id": order_id, "status": order.status.value},
        )
        return order

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    def get_timeline(self, order_id: int) -> List[TimelineEntry]:
        self.get_order(order_id)
        return self.repo.get_timeline(order_id)

    def add_timeline_entry(self, order_id: int, data: TimelineEntryCreate, admin_id: Optional[int] = None) -> TimelineEntry:
        order = self.get_order(order_id)
        status = parse_status(data.status) if data.status else order.status
        if status is None:
            raise ValidationError(f"Invalid order status: {data.status}")
        return self.repo.add_timeline(order_id, status.value, data.description, created_by=admin_id)
