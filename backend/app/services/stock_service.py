"""
Stock Service
Variant availability and temporary stock reservations

available = stock - sum(ACTIVE, unexpired reservations), never below 0.
Reservations hold stock for STOCK_RESERVATION_MINUTES while a shopper checks
out; converting one decrements the real stock.

Author: TM3
Date: 2025-11-21
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from app.core.config import settings
from app.core.database import db_cursor
from app.core.exceptions import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from app.domain.operations import ReservationStatus, StockReservation
from app.repositories.stock_repository import StockRepository

logger = logging.getLogger(__name__)


class StockService:

    def __init__(self):
        self.repo = StockRepository()

    def available(self, variant_id: int, cursor=None) -> int:
        now = datetime.now(timezone.utc)
        with db_cursor(cursor) as cur:
            variant = self.repo.get_variant_stock(variant_id, cursor=cur)
            if not variant:
                raise NotFoundError("Variant", variant_id)
            reserved = self.repo.reserved_quantity(variant_id, now, cursor=cur)
            return max(0, int(variant['stock']) - reserved)

    def availability(self, variant_id: int) -> dict:
        now = datetime.now(timezone.utc)
        with db_cursor() as cursor:
            variant = self.repo.get_variant_stock(variant_id, cursor=cursor)
            if not variant:
                raise NotFoundError("Variant", variant_id)
            reserved = self.repo.reserved_quantity(variant_id, now, cursor=cursor)
        return {
            "variant_id": variant_id,
            "stock": int(variant['stock']),
            "reserved": reserved,
            "available": max(0, int(variant['stock']) - reserved),
        }

    def reserve(
        self,
        variant_id: int,
        quantity: int,
        session_id: Optional[str],
        user_id: Optional[int] = None,
        minutes: Optional[int] = None,
    ) -> StockReservation:
        if not session_id:
            raise ValidationError("session_id is required")
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")

        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=minutes or settings.STOCK_RESERVATION_MINUTES)

        with db_cursor() as cursor:
            variant = self.repo.get_variant_stock(variant_id, lock=True, cursor=cursor)
            if not variant:
                raise NotFoundError("Variant", variant_id)

            reserved = self.repo.reserved_quantity(variant_id, now, cursor=cursor)
            available = max(0, int(variant['stock']) - reserved)
            if quantity > available:
                raise InsufficientStockError(
                    f"Insufficient stock: requested {quantity}, available {available}",
                    details={"variant_id": variant_id, "available": available},
                )

            reservation = self.repo.create_reservation(
                variant_id, variant['product_id'], quantity, session_id, expires_at,
                user_id=user_id, cursor=cursor,
            )

        logger.info(f"Reserved {quantity} of variant {variant_id} for session {session_id} until {expires_at}")
        return reservation

    def _convert_locked(self, reservation: StockReservation, order_id: Optional[int], cursor) -> StockReservation:
        if reservation.status != ReservationStatus.ACTIVE:
            raise ConflictError(f"Reservation {reservation.id} is {reservation.status.value}")

        if reservation.is_expired():
            self.repo.update_reservation_status(reservation.id, ReservationStatus.EXPIRED.value, cursor=cursor)
            raise ConflictError(f"Reservation {reservation.id} has expired")

        if not self.repo.decrement_stock(reservation.variant_id, reservation.quantity, cursor=cursor):
            raise InsufficientStockError(details={"variant_id": reservation.variant_id})

        self.repo.update_reservation_status(
            reservation.id, ReservationStatus.CONVERTED.value, order_id=order_id, cursor=cursor
        )
        return reservation.model_copy(update={"status": ReservationStatus.CONVERTED, "order_id": order_id})

    def convert(self, reservation_id: int, order_id: Optional[int] = None) -> StockReservation:
        """
        Turn an active reservation into a stock decrement

        An expired reservation is marked EXPIRED (committed) before the
        conflict is reported.
        """
        with db_cursor() as cursor:
            reservation = self.repo.find_reservation(reservation_id, lock=True, cursor=cursor)
            if not reservation:
                raise NotFoundError("Reservation", reservation_id)
            if not (reservation.status == ReservationStatus.ACTIVE and reservation.is_expired()):
                return self._convert_locked(reservation, order_id, cursor)
            self.repo.update_reservation_status(reservation.id, ReservationStatus.EXPIRED.value, cursor=cursor)

        raise ConflictError(f"Reservation {reservation_id} has expired")

    def convert_for_session(self, session_id: str, order_id: Optional[int] = None, cursor=None) -> List[StockReservation]:
        if not session_id:
            raise ValidationError("session_id is required")
        with db_cursor(cursor) as cur:
            reservations = self.repo.find_active_by_session(session_id, cursor=cur)
            return [self._convert_locked(r, order_id, cur) for r in reservations]

    def cancel(self, reservation_id: int) -> StockReservation:
        """Idempotent: a reservation that is no longer active is returned unchanged"""
        with db_cursor() as cursor:
            reservation = self.repo.find_reservation(reservation_id, lock=True, cursor=cursor)
            if not reservation:
                raise NotFoundError("Reservation", reservation_id)
            if reservation.status != ReservationStatus.ACTIVE:
                return reservation
            self.repo.update_reservation_status(reservation_id, ReservationStatus.CANCELLED.value, cursor=cursor)
            return reservation.model_copy(update={"status": ReservationStatus.CANCELLED})

    def cancel_all(self, user_id: Optional[int] = None, session_id: Optional[str] = None) -> int:
        if user_id is None and not session_id:
            raise ValidationError("user_id or session_id is required")
        return self.repo.cancel_all(user_id=user_id, session_id=session_id)

    def cleanup_expired(self) -> int:
        count = self.repo.cancel_expired(datetime.now(timezone.utc))
        if count:
            logger.info(f"Cancelled {count} expired stock reservations")
        return count

    def low_stock(self, threshold: Optional[int] = None) -> List[dict]:
        return self.repo.find_low_stock(threshold if threshold is not None else settings.LOW_STOCK_THRESHOLD)

    def out_of_stock(self) -> List[dict]:
        return self.repo.find_out_of_stock()

    # ------------------------------------------------------------------
    # Order stock movements
    # ------------------------------------------------------------------

    def decrement_for_items(self, items, cursor):
        """Decrement variant stock for order lines; raises on any shortfall"""
        for item in items:
            variant_id = item.get('variant_id') if isinstance(item, dict) else item.variant_id
            quantity = item.get('quantity') if isinstance(item, dict) else item.quantity
            if variant_id is None:
                continue
            if not self.repo.decrement_stock(variant_id, quantity, cursor=cursor):
                raise InsufficientStockError(
                    f"Insufficient stock for variant {variant_id}",
                    details={"variant_id": variant_id},
                )

    def restore_for_items(self, items, cursor):
        for item in items:
            if item.variant_id is not None:
                self.repo.increment_stock(item.variant_id, item.quantity, cursor=cursor)
