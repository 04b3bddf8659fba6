"""
Order status machine

Every status change in the system goes through is_valid_transition.

Author: TM3
Date: 2025-11-20
"""
from enum import Enum
from typing import Dict, List, Optional


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    RETURNED = "RETURNED"


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, List[OrderStatus]] = {
    OrderStatus.PENDING: [OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.CANCELLED],
    OrderStatus.PAID: [OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED],
    OrderStatus.PROCESSING: [OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED, OrderStatus.RETURNED],
    OrderStatus.DELIVERED: [OrderStatus.COMPLETED, OrderStatus.RETURNED],
    OrderStatus.COMPLETED: [OrderStatus.RETURNED],
    OrderStatus.CANCELLED: [],
    OrderStatus.REFUNDED: [],
    OrderStatus.RETURNED: [],
}

STATUS_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.PAID: "Paid",
    OrderStatus.PROCESSING: "Processing",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
    OrderStatus.REFUNDED: "Refunded",
    OrderStatus.RETURNED: "Returned",
}

CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PAID}
ADMIN_LOCKED = {OrderStatus.COMPLETED, OrderStatus.REFUNDED, OrderStatus.RETURNED}
REFUNDABLE = {OrderStatus.PAID, OrderStatus.PROCESSING}


def parse_status(value) -> Optional[OrderStatus]:
    """Return the OrderStatus for value (case-insensitive) or None"""
    if isinstance(value, OrderStatus):
        return value
    if not value:
        return None
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        return None


def get_valid_next_statuses(current) -> List[OrderStatus]:
    status = parse_status(current)
    if status is None:
        return []
    return list(ORDER_STATUS_TRANSITIONS[status])


def is_valid_transition(current, new) -> bool:
    new_status = parse_status(new)
    if new_status is None:
        return False
    return new_status in get_valid_next_statuses(current)


def is_terminal(status) -> bool:
    return parse_status(status) is not None and not get_valid_next_statuses(status)


def can_customer_cancel(status) -> bool:
    return parse_status(status) in CUSTOMER_CANCELLABLE


def can_admin_modify(status) -> bool:
    parsed = parse_status(status)
    return parsed is not None and parsed not in ADMIN_LOCKED


def can_be_refunded(status) -> bool:
    return parse_status(status) in REFUNDABLE


def get_next_recommended_status(current) -> Optional[OrderStatus]:
    """First allowed transition; the happy path is listed first"""
    next_statuses = get_valid_next_statuses(current)
    return next_statuses[0] if next_statuses else None


def status_label(status) -> str:
    parsed = parse_status(status)
    if parsed is None:
        return str(status)
    return STATUS_LABELS[parsed]
