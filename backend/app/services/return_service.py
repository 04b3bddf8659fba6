"""
Return Service
Customer return / exchange requests and their admin lifecycle

Author: TM3
Date: 2025-11-21
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.operations import (
    RETURN_STATUS_TRANSITIONS, AdminReturnCreate, ReturnCreate, ReturnRequest, ReturnStatus,
    ReturnStatusUpdate, is_valid_return_transition,
)
from app.domain.order_status import OrderStatus
from app.repositories.order_repository import OrderRepository
from app.repositories.return_repository import ReturnRepository
from app.services.system_log_service import SystemLogService

logger = logging.getLogger(__name__)

RETURNABLE_ORDER_STATUSES = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}


class ReturnService:

    def __init__(self):
        self.repo = ReturnRepository()
        self.orders = OrderRepository()
        self.system_logs = SystemLogService()

    def _create(self, user_id: int, data: ReturnCreate) -> ReturnRequest:
        with db_cursor() as cursor:
            order = self.orders.find_by_id(data.order_id, user_id=user_id, cursor=cursor)
            if not order:
                raise NotFoundError("Order", data.order_id)
            if order.status not in RETURNABLE_ORDER_STATUSES:
                raise ValidationError(
                    f"Returns can only be requested for shipped or delivered orders (order is {order.status.value})"
                )

            item = next((i for i in order.items if i.id == data.order_item_id), None)
            if item is None:
                raise ValidationError(f"Item {data.order_item_id} does not belong to order {order.order_number}")
            if data.quantity > item.quantity:
                raise ValidationError(f"Return quantity cannot exceed the ordered quantity ({item.quantity})")
            if self.repo.find_open_for_item(item.id, cursor=cursor):
                raise ConflictError("A return request already exists for this item")

            return_id = self.repo.create({
                "user_id": user_id,
                "order_id": order.id,
                "order_item_id": item.id,
                "type": data.type.value,
                "reason": data.reason,
                "description": data.description,
                "quantity": data.quantity,
            }, cursor=cursor)
            created = self.repo.find_by_id(return_id, cursor=cursor)

        logger.info(f"Return request {return_id} opened for order {order.order_number} item {item.id}")
        return created

    def create_for_user(self, user_id: int, data: ReturnCreate) -> ReturnRequest:
        return self._create(user_id, data)

    def create_for_admin(self, data: AdminReturnCreate, admin_id: Optional[int] = None) -> ReturnRequest:
        created = self._create(data.user_id, data)
        self.system_logs.log_info(
            "RETURN_CREATED", f"Return request {created.id} created for user {data.user_id}",
            user_id=admin_id, metadata={"return_id": created.id, "order_id": data.order_id},
        )
        return created

    def list_for_user(self, user_id: int) -> List[ReturnRequest]:
        return self.repo.find_by_user(user_id)

    def list_returns(
        self,
        status: Optional[str] = None,
        type: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ReturnRequest], int]:
        return self.repo.find_all(status=status, type=type, search=search, limit=limit, offset=offset)

    def get_return(self, return_id: int) -> ReturnRequest:
        request = self.repo.find_by_id(return_id)
        if not request:
            raise NotFoundError("Return request", return_id)
        return request

    def update_status(
        self,
        return_id: int,
        data: ReturnStatusUpdate,
        admin_id: Optional[int] = None,
        ip_address: Optional[str] = None,
    ) -> ReturnRequest:
        """
        Move a return request along its lifecycle

        REFUNDED requires 0 < refund_amount <= the order line total and
        stamps refund_date.
        """
        with db_cursor() as cursor:
            request = self.repo.find_by_id(return_id, cursor=cursor)
            if not request:
                raise NotFoundError("Return request", return_id)

            if not is_valid_return_transition(request.status, data.status):
                allowed = ", ".join(s.value for s in RETURN_STATUS_TRANSITIONS[request.status]) or "none"
                raise ValidationError(
                    f"Invalid status transition from {request.status.value} to {data.status.value}. "
                    f"Allowed: {allowed}"
                )

            refund_date = None
            if data.status == ReturnStatus.REFUNDED:
                if data.refund_amount is None or data.refund_amount <= 0:
                    raise ValidationError("A refund amount greater than 0 is required")
                item = self.orders.find_item(request.order_item_id, cursor=cursor)
                if item is not None and data.refund_amount > item.total:
                    raise ValidationError(f"Refund amount cannot exceed the item total ({item.total})")
                refund_date = datetime.now(timezone.utc)

            self.repo.update_status(
                return_id,
                data.status.value,
                admin_notes=data.admin_notes,
                refund_amount=data.refund_amount if refund_date else None,
                refund_method=data.refund_method,
                refund_date=refund_date,
                cursor=cursor,
            )
            updated = self.repo.find_by_id(return_id, cursor=cursor)

        self.system_logs.log_info(
            "RETURN_STATUS_UPDATED",
            f"Return request {return_id} changed from {request.status.value} to {data.status.value}",
            user_id=admin_id,
            ip_address=ip_address,
            metadata={"return_id": return_id, "from": request.status.value, "to": data.status.value},
        )
        return updated
