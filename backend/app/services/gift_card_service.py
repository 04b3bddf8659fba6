"""
Gift Card Service
Issue, adjust and redeem stored-value gift cards

Codes are stored in their sanitized form (see utils.codes.sanitize_code_input)
and every lookup sanitizes the customer's input the same way, so typing
"gift-0l5" finds the card stored as "GIFT-OIS".

Author: TM3
Date: 2025-11-21
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.domain.base import money
from app.domain.promotion import (
    GiftCard, GiftCardCreate, GiftCardStatus, GiftCardTransaction, GiftCardUpdate,
)
from app.repositories.gift_card_repository import GiftCardRepository
from app.repositories.notification_repository import NotificationRepository
from app.services.system_log_service import SystemLogService
from app.utils.codes import generate_gift_card_code, sanitize_code_input

logger = logging.getLogger(__name__)

CODE_GENERATION_ATTEMPTS = 10


def rebalance_on_initial_change(card: GiftCard, new_initial) -> Decimal:
    """
    Current balance after the initial balance is edited

    The amount already spent is preserved: max(0, new_initial - used).
    """
    used = card.used_amount
    return money(max(Decimal("0"), Decimal(str(new_initial)) - used))


class GiftCardService:

    def __init__(self):
        self.repo = GiftCardRepository()
        self.notifications = NotificationRepository()
        self.system_logs = SystemLogService()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_card(self, card_id: int) -> GiftCard:
        card = self.repo.find_by_id(card_id)
        if not card:
            raise NotFoundError("Gift card", card_id)
        return card

    def get_by_code(self, code: str, user_id: Optional[int] = None, is_admin: bool = False) -> GiftCard:
        """
        Balance check by code

        Cards assigned to another user are hidden from customers.
        """
        card = self.repo.find_by_code(sanitize_code_input(code))
        if not card:
            raise NotFoundError("Gift card")
        if not is_admin and card.user_id is not None and card.user_id != user_id:
            raise ForbiddenError("This gift card belongs to another user")
        return card

    def list_cards(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[GiftCard], int]:
        return self.repo.find_all(search=search, status=status, limit=limit, offset=offset)

    def list_transactions(
        self,
        card_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[GiftCardTransaction], int]:
        if card_id is not None:
            self.get_card(card_id)
        return self.repo.find_transactions(card_id=card_id, limit=limit, offset=offset)

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    def _new_code(self, cursor) -> str:
        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = sanitize_code_input(generate_gift_card_code())
            if not self.repo.code_exists(code, cursor=cursor):
                return code
        raise ConflictError("Could not generate a unique gift card code")

    def create_card(self, data: GiftCardCreate, admin_id: Optional[int] = None) -> GiftCard:
        with db_cursor() as cursor:
            if data.code:
                code = sanitize_code_input(data.code)
                if not code:
                    raise ValidationError("Gift card code cannot be empty")
                if self.repo.code_exists(code, cursor=cursor):
                    raise ConflictError(f"Gift card code {code} already exists")
            else:
                code = self._new_code(cursor)

            balance = money(data.initial_balance)
            card = self.repo.create({
                "code": code,
                "initial_balance": balance,
                "current_balance": balance,
                "status": GiftCardStatus.ACTIVE.value,
                "user_id": data.user_id,
                "expires_at": data.expires_at,
                "note": data.note,
            }, cursor=cursor)

        self.system_logs.log_info(
            "GIFT_CARD_CREATED", f"Gift card {card.code} issued for {balance}",
            user_id=admin_id, metadata={"gift_card_id": card.id},
        )
        return card

    def update_card(self, card_id: int, data: GiftCardUpdate, admin_id: Optional[int] = None) -> GiftCard:
        fields = data.model_dump(exclude_unset=True)
        with db_cursor() as cursor:
            card = self.repo.find_by_id(card_id, for_update=True, cursor=cursor)
            if not card:
                raise NotFoundError("Gift card", card_id)

            if fields.get("initial_balance") is not None and fields["initial_balance"] != card.initial_balance:
                fields["initial_balance"] = money(fields["initial_balance"])
                fields["current_balance"] = rebalance_on_initial_change(card, fields["initial_balance"])
            if fields.get("status") is not None:
                fields["status"] = GiftCardStatus(fields["status"]).value

            updated = self.repo.update(card_id, fields, cursor=cursor)

        self.system_logs.log_info(
            "GIFT_CARD_UPDATED", f"Gift card {updated.code} updated",
            user_id=admin_id, metadata={"gift_card_id": card_id, "fields": sorted(fields)},
        )
        return updated

    def delete_card(self, card_id: int, admin_id: Optional[int] = None) -> GiftCard:
        with db_cursor() as cursor:
            card = self.repo.find_by_id(card_id, cursor=cursor)
            if not card:
                raise NotFoundError("Gift card", card_id)
            self.repo.delete(card_id, cursor=cursor)

        self.system_logs.log_info(
            "GIFT_CARD_DELETED", f"Gift card {card.code} deleted",
            user_id=admin_id, metadata={"gift_card_id": card_id},
        )
        return card

    # ------------------------------------------------------------------
    # Balance movements
    # ------------------------------------------------------------------

    def apply_transaction(
        self,
        card: GiftCard,
        amount,
        description: Optional[str] = None,
        order_id: Optional[int] = None,
        created_by: Optional[int] = None,
        cursor=None,
    ) -> GiftCardTransaction:
        """
        Move a card balance by amount (negative = spend) inside the caller's transaction

        The caller must have loaded card with for_update=True.
        """
        amount = money(amount)
        if amount == 0:
            raise ValidationError("Transaction amount cannot be zero")
        if card.status == GiftCardStatus.EXPIRED or card.is_expired():
            raise ValidationError("Gift card has expired")
        if amount < 0 and -amount > card.current_balance:
            raise ValidationError(
                f"Insufficient gift card balance: {money(card.current_balance)} available"
            )

        new_balance = money(card.current_balance + amount)
        new_status = GiftCardStatus.ACTIVE if new_balance > 0 else GiftCardStatus.USED
        last_used = datetime.now(timezone.utc) if amount < 0 else None

        self.repo.update_balance(card.id, new_balance, new_status.value, last_used=last_used, cursor=cursor)
        transaction = self.repo.add_transaction(
            card.id, amount, new_balance,
            description=description, order_id=order_id, created_by=created_by, cursor=cursor,
        )

        if card.user_id:
            verb = "used" if amount < 0 else "credited"
            self.notifications.create(
                card.user_id,
                "GIFT_CARD",
                f"Gift card {verb}",
                f"{money(abs(amount))} {verb} on gift card {card.code}. Remaining balance: {new_balance}",
                cursor=cursor,
            )
        return transaction

    def add_transaction(
        self,
        card_id: int,
        amount,
        description: Optional[str] = None,
        admin_id: Optional[int] = None,
    ) -> GiftCardTransaction:
        with db_cursor() as cursor:
            card = self.repo.find_by_id(card_id, for_update=True, cursor=cursor)
            if not card:
                raise NotFoundError("Gift card", card_id)
            transaction = self.apply_transaction(
                card, amount, description=description, created_by=admin_id, cursor=cursor
            )

        self.system_logs.log_info(
            "GIFT_CARD_TRANSACTION",
            f"Gift card {card.code} adjusted by {transaction.amount}",
            user_id=admin_id,
            metadata={"gift_card_id": card_id, "transaction_id": transaction.id},
        )
        return transaction

    def expire_overdue(self) -> int:
        count = self.repo.expire_overdue(datetime.now(timezone.utc))
        if count:
            logger.info(f"Expired {count} overdue gift cards")
        return count
