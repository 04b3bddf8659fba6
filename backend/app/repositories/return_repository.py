"""
Return Repository - customer return and exchange requests

Author: TM3
Date: 2025-11-21
"""
from datetime import datetime
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.domain.operations import ReturnRequest
from app.repositories.sql import where_clause

RETURN_SELECT = """
    SELECT
        r.id, r.user_id, r.order_id, r.order_item_id, r.type, r.status, r.reason,
        r.description, r.quantity, r.refund_amount, r.refund_method, r.refund_date,
        r.admin_notes, r.created_at, r.updated_at,
        o.order_number,
        oi.product_name, oi.price AS item_price,
        u.email AS user_email,
        TRIM(CONCAT(u.first_name, ' ', u.last_name)) AS user_name
    FROM return_requests r
    JOIN orders o ON o.id = r.order_id
    LEFT JOIN order_items oi ON oi.id = r.order_item_id
    LEFT JOIN users u ON u.id = r.user_id
"""


class ReturnRepository:

    def find_by_id(self, return_id: int, cursor=None) -> Optional[ReturnRequest]:
        with db_cursor(cursor) as cur:
            cur.execute(f"{RETURN_SELECT} WHERE r.id = %s", (return_id,))
            row = cur.fetchone()
            return ReturnRequest(**row) if row else None

    def find_open_for_item(self, order_item_id: int, cursor=None) -> Optional[int]:
        """Id of a non-rejected request for the item, if any"""
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT id FROM return_requests
                WHERE order_item_id = %s AND status <> 'REJECTED'
                LIMIT 1
            """, (order_item_id,))
            row = cur.fetchone()
            return row['id'] if row else None

    def find_by_user(self, user_id: int, cursor=None) -> List[ReturnRequest]:
        with db_cursor(cursor) as cur:
            cur.execute(f"{RETURN_SELECT} WHERE r.user_id = %s ORDER BY r.created_at DESC", (user_id,))
            return [ReturnRequest(**row) for row in cur.fetchall()]

    def find_all(
        self,
        status: Optional[str] = None,
        type: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[ReturnRequest], int]:
        conditions = []
        params = []

        if status:
            conditions.append("r.status = %s")
            params.append(status.upper())
        if type:
            conditions.append("r.type = %s")
            params.append(type.upper())
        if search:
            conditions.append("""(
                o.order_number ILIKE %s OR u.email ILIKE %s
                OR oi.product_name ILIKE %s OR r.reason ILIKE %s
            )""")
            params.extend([f"%{search}%"] * 4)

        where = where_clause(conditions)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT COUNT(*) AS total
                FROM return_requests r
                JOIN orders o ON o.id = r.order_id
                LEFT JOIN order_items oi ON oi.id = r.order_item_id
                LEFT JOIN users u ON u.id = r.user_id
                WHERE {where}
            """, params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                {RETURN_SELECT}
                WHERE {where}
                ORDER BY r.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [ReturnRequest(**row) for row in cur.fetchall()], total

    def create(self, data: dict, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO return_requests
                    (user_id, order_id, order_item_id, type, status, reason, description, quantity)
                VALUES (%s, %s, %s, %s, 'PENDING', %s, %s, %s)
                RETURNING id
            """, (
                data['user_id'], data['order_id'], data['order_item_id'], data['type'],
                data['reason'], data.get('description'), data['quantity'],
            ))
            return cur.fetchone()['id']

    def update_status(
        self,
        return_id: int,
        status: str,
        admin_notes: Optional[str] = None,
        refund_amount=None,
        refund_method: Optional[str] = None,
        refund_date: Optional[datetime] = None,
        cursor=None
    ) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE return_requests
                SET status = %s,
                    admin_notes = COALESCE(%s, admin_notes),
                    refund_amount = COALESCE(%s, refund_amount),
                    refund_method = COALESCE(%s, refund_method),
                    refund_date = COALESCE(%s, refund_date),
                    updated_at = NOW()
                WHERE id = %s
            """, (status, admin_notes, refund_amount, refund_method, refund_date, return_id))
            return cur.rowcount > 0
