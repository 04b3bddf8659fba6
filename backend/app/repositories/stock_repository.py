"""
Stock Repository - variant stock levels and stock reservations

Author: TM3
Date: 2025-11-21
"""
from datetime import datetime
from typing import List, Optional

from app.core.database import db_cursor
from app.domain.operations import StockReservation

RESERVATION_COLUMNS = """
    id, variant_id, product_id, quantity, user_id, session_id,
    status, expires_at, order_id, created_at
"""


class StockRepository:
    """
    Repository for product_variants.stock and stock_reservations

    Stock mutations take the variant row lock (FOR UPDATE) when the caller
    passes lock=True, so concurrent reservations serialise on the variant.
    """

    # ------------------------------------------------------------------
    # Variant stock
    # ------------------------------------------------------------------

    def get_variant_stock(self, variant_id: int, lock: bool = False, cursor=None) -> Optional[dict]:
        """Returns {id, product_id, stock} or None"""
        with db_cursor(cursor) as cur:
            suffix = " FOR UPDATE" if lock else ""
            cur.execute(
                f"SELECT id, product_id, stock FROM product_variants WHERE id = %s{suffix}",
                (variant_id,)
            )
            return cur.fetchone()

    def reserved_quantity(self, variant_id: int, now: datetime, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT COALESCE(SUM(quantity), 0) AS reserved
                FROM stock_reservations
                WHERE variant_id = %s AND status = 'ACTIVE' AND expires_at > %s
            """, (variant_id, now))
            return int(cur.fetchone()['reserved'])

    def decrement_stock(self, variant_id: int, quantity: int, cursor=None) -> bool:
        """Decrement only when enough stock remains; False otherwise"""
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE product_variants
                SET stock = stock - %s, updated_at = NOW()
                WHERE id = %s AND stock >= %s
            """, (quantity, variant_id, quantity))
            return cur.rowcount > 0

    def increment_stock(self, variant_id: int, quantity: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE product_variants
                SET stock = stock + %s, updated_at = NOW()
                WHERE id = %s
            """, (quantity, variant_id))
            return cur.rowcount > 0

    def find_low_stock(self, threshold: int, cursor=None) -> List[dict]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT v.id AS variant_id, v.sku, v.stock, v.price,
                       p.id AS product_id, p.name AS product_name, p.slug AS product_slug
                FROM product_variants v
                JOIN products p ON p.id = v.product_id
                WHERE v.stock > 0 AND v.stock <= %s
                ORDER BY v.stock ASC, p.name ASC
            """, (threshold,))
            return cur.fetchall()

    def find_out_of_stock(self, cursor=None) -> List[dict]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT v.id AS variant_id, v.sku, v.stock, v.price,
                       p.id AS product_id, p.name AS product_name, p.slug AS product_slug
                FROM product_variants v
                JOIN products p ON p.id = v.product_id
                WHERE v.stock <= 0
                ORDER BY p.name ASC
            """)
            return cur.fetchall()

    def count_low_stock(self, threshold: int, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute(
                "SELECT COUNT(*) AS total FROM product_variants WHERE stock > 0 AND stock <= %s",
                (threshold,)
            )
            return cur.fetchone()['total']

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def create_reservation(
        self,
        variant_id: int,
        product_id: int,
        quantity: int,
        session_id: str,
        expires_at: datetime,
        user_id: Optional[int] = None,
        cursor=None
    ) -> StockReservation:
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO stock_reservations
                    (variant_id, product_id, quantity, user_id, session_id, status, expires_at)
                VALUES (%s, %s, %s, %s, %s, 'ACTIVE', %s)
                RETURNING {RESERVATION_COLUMNS}
            """, (variant_id, product_id, quantity, user_id, session_id, expires_at))
            return StockReservation(**cur.fetchone())

    def find_reservation(self, reservation_id: int, lock: bool = False, cursor=None) -> Optional[StockReservation]:
        with db_cursor(cursor) as cur:
            suffix = " FOR UPDATE" if lock else ""
            cur.execute(
                f"SELECT {RESERVATION_COLUMNS} FROM stock_reservations WHERE id = %s{suffix}",
                (reservation_id,)
            )
            row = cur.fetchone()
            return StockReservation(**row) if row else None

    def find_active_by_session(self, session_id: str, cursor=None) -> List[StockReservation]:
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {RESERVATION_COLUMNS} FROM stock_reservations
                WHERE session_id = %s AND status = 'ACTIVE'
                ORDER BY id
                FOR UPDATE
            """, (session_id,))
            return [StockReservation(**row) for row in cur.fetchall()]

    def update_reservation_status(
        self,
        reservation_id: int,
        status: str,
        order_id: Optional[int] = None,
        cursor=None
    ) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE stock_reservations
                SET status = %s, order_id = COALESCE(%s, order_id), updated_at = NOW()
                WHERE id = %s
            """, (status, order_id, reservation_id))
            return cur.rowcount > 0

    def cancel_all(self, user_id: Optional[int] = None, session_id: Optional[str] = None, cursor=None) -> int:
        conditions = ["status = 'ACTIVE'"]
        params = []
        if user_id is not None:
            conditions.append("user_id = %s")
            params.append(user_id)
        if session_id is not None:
            conditions.append("session_id = %s")
            params.append(session_id)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                UPDATE stock_reservations SET status = 'CANCELLED', updated_at = NOW()
                WHERE {" AND ".join(conditions)}
            """, params)
            return cur.rowcount

    def cancel_expired(self, now: datetime, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE stock_reservations SET status = 'CANCELLED', updated_at = NOW()
                WHERE status = 'ACTIVE' AND expires_at <= %s
            """, (now,))
            return cur.rowcount
