"""
Coupon Repository - coupons and user coupon wallets

Author: TM3
Date: 2025-11-20
"""
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.domain.promotion import Coupon, UserCoupon
from app.repositories.sql import build_set_clause, where_clause

COUPON_COLUMNS = """
    id, code, description, type, value, min_order_amount, max_discount,
    max_usage, usage_count, valid_from, valid_until, is_active, created_at, updated_at
"""

COUPON_FIELDS = [
    "code", "description", "type", "value", "min_order_amount", "max_discount",
    "max_usage", "valid_from", "valid_until", "is_active",
]


class CouponRepository:
    """Repository for coupons and the user_coupons wallet table"""

    def find_by_id(self, coupon_id: int, cursor=None) -> Optional[Coupon]:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {COUPON_COLUMNS} FROM coupons WHERE id = %s", (coupon_id,))
            row = cur.fetchone()
            return Coupon(**row) if row else None

    def find_by_code(self, code: str, cursor=None) -> Optional[Coupon]:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {COUPON_COLUMNS} FROM coupons WHERE code = %s", (code.upper(),))
            row = cur.fetchone()
            return Coupon(**row) if row else None

    def code_exists(self, code: str, exclude_id: Optional[int] = None, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            if exclude_id is None:
                cur.execute("SELECT 1 FROM coupons WHERE code = %s", (code.upper(),))
            else:
                cur.execute("SELECT 1 FROM coupons WHERE code = %s AND id <> %s", (code.upper(), exclude_id))
            return cur.fetchone() is not None

    def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[Coupon], int]:
        conditions = []
        params = []

        if search:
            conditions.append("(code ILIKE %s OR description ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        where = where_clause(conditions)

        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM coupons WHERE {where}", params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                SELECT {COUPON_COLUMNS} FROM coupons
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [Coupon(**row) for row in cur.fetchall()], total

    def create(self, data: dict, cursor=None) -> Coupon:
        columns = [f for f in COUPON_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO coupons ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING {COUPON_COLUMNS}
            """, [data[c] for c in columns])
            return Coupon(**cur.fetchone())

    def update(self, coupon_id: int, data: dict, cursor=None) -> Optional[Coupon]:
        clause, params = build_set_clause(data, COUPON_FIELDS)
        if not clause:
            return self.find_by_id(coupon_id, cursor=cursor)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                UPDATE coupons SET {clause}, updated_at = NOW()
                WHERE id = %s
                RETURNING {COUPON_COLUMNS}
            """, params + [coupon_id])
            row = cur.fetchone()
            return Coupon(**row) if row else None

    def delete(self, coupon_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM user_coupons WHERE coupon_id = %s", (coupon_id,))
            cur.execute("DELETE FROM coupons WHERE id = %s", (coupon_id,))
            return cur.rowcount > 0

    def increment_usage(self, coupon_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE coupons SET usage_count = usage_count + 1, updated_at = NOW()
                WHERE id = %s
            """, (coupon_id,))
            return cur.rowcount > 0

    # ------------------------------------------------------------------
    # User coupons
    # ------------------------------------------------------------------

    def count_used_user_coupons(self, coupon_id: int, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute(
                "SELECT COUNT(*) AS total FROM user_coupons WHERE coupon_id = %s AND is_used",
                (coupon_id,)
            )
            return cur.fetchone()['total']

    def find_user_coupon(self, user_id: int, coupon_id: int, cursor=None) -> Optional[UserCoupon]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT id, user_id, coupon_id, is_used, used_at, order_id, created_at
                FROM user_coupons
                WHERE user_id = %s AND coupon_id = %s
            """, (user_id, coupon_id))
            row = cur.fetchone()
            return UserCoupon(**row) if row else None

    def create_user_coupon(self, user_id: int, coupon_id: int, cursor=None) -> UserCoupon:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO user_coupons (user_id, coupon_id)
                VALUES (%s, %s)
                RETURNING id, user_id, coupon_id, is_used, used_at, order_id, created_at
            """, (user_id, coupon_id))
            return UserCoupon(**cur.fetchone())

    def mark_user_coupon_used(self, user_coupon_id: int, order_id: Optional[int], cursor=None) -> bool:
        """Flip is_used only if still unused; False means someone else used it first"""
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE user_coupons
                SET is_used = TRUE, used_at = NOW(), order_id = %s
                WHERE id = %s AND is_used = FALSE
            """, (order_id, user_coupon_id))
            return cur.rowcount > 0

    def find_user_coupons(self, user_id: int, cursor=None) -> List[UserCoupon]:
        """User wallet with the coupon embedded"""
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT
                    uc.id AS uc_id, uc.user_id, uc.coupon_id, uc.is_used, uc.used_at,
                    uc.order_id, uc.created_at AS uc_created_at,
                    c.id, c.code, c.description, c.type, c.value, c.min_order_amount,
                    c.max_discount, c.max_usage, c.usage_count, c.valid_from, c.valid_until,
                    c.is_active, c.created_at, c.updated_at
                FROM user_coupons uc
                JOIN coupons c ON c.id = uc.coupon_id
                WHERE uc.user_id = %s
                ORDER BY uc.created_at DESC
            """, (user_id,))

            result = []
            for row in cur.fetchall():
                coupon = Coupon(**{k: row[k] for k in (
                    'id', 'code', 'description', 'type', 'value', 'min_order_amount',
                    'max_discount', 'max_usage', 'usage_count', 'valid_from', 'valid_until',
                    'is_active', 'created_at', 'updated_at'
                )})
                result.append(UserCoupon(
                    id=row['uc_id'],
                    user_id=row['user_id'],
                    coupon_id=row['coupon_id'],
                    is_used=row['is_used'],
                    used_at=row['used_at'],
                    order_id=row['order_id'],
                    created_at=row['uc_created_at'],
                    coupon=coupon,
                ))
            return result
