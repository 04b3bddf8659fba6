"""
Gift Card Repository - gift cards and their balance transactions

Author: TM3
Date: 2025-11-20
"""
from datetime import datetime
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.domain.promotion import GiftCard, GiftCardTransaction
from app.repositories.sql import build_set_clause, where_clause

GIFT_CARD_SELECT = """
    SELECT
        g.id, g.code, g.initial_balance, g.current_balance, g.status, g.user_id,
        g.expires_at, g.last_used, g.note, g.created_at, g.updated_at,
        u.email AS user_email
    FROM gift_cards g
    LEFT JOIN users u ON u.id = g.user_id
"""

GIFT_CARD_FIELDS = [
    "code", "initial_balance", "current_balance", "status", "user_id", "expires_at", "note",
]


class GiftCardRepository:
    """Repository for gift cards"""

    def _find(self, column: str, value, for_update: bool = False, cursor=None) -> Optional[GiftCard]:
        with db_cursor(cursor) as cur:
            lock = " FOR UPDATE OF g" if for_update else ""
            cur.execute(f"{GIFT_CARD_SELECT} WHERE g.{column} = %s{lock}", (value,))
            row = cur.fetchone()
            return GiftCard(**row) if row else None

    def find_by_id(self, card_id: int, for_update: bool = False, cursor=None) -> Optional[GiftCard]:
        return self._find("id", card_id, for_update=for_update, cursor=cursor)

    def find_by_code(self, code: str, for_update: bool = False, cursor=None) -> Optional[GiftCard]:
        return self._find("code", code, for_update=for_update, cursor=cursor)

    def code_exists(self, code: str, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("SELECT 1 FROM gift_cards WHERE code = %s", (code,))
            return cur.fetchone() is not None

    def find_all(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[GiftCard], int]:
        conditions = []
        params = []

        if search:
            conditions.append("(g.code ILIKE %s OR u.email ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if status:
            conditions.append("g.status = %s")
            params.append(status.upper())

        where = where_clause(conditions)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT COUNT(*) AS total
                FROM gift_cards g
                LEFT JOIN users u ON u.id = g.user_id
                WHERE {where}
            """, params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                {GIFT_CARD_SELECT}
                WHERE {where}
                ORDER BY g.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [GiftCard(**row) for row in cur.fetchall()], total

    def find_by_user(self, user_id: int, cursor=None) -> List[GiftCard]:
        with db_cursor(cursor) as cur:
            cur.execute(f"{GIFT_CARD_SELECT} WHERE g.user_id = %s ORDER BY g.created_at DESC", (user_id,))
            return [GiftCard(**row) for row in cur.fetchall()]

    def create(self, data: dict, cursor=None) -> GiftCard:
        columns = [f for f in GIFT_CARD_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO gift_cards ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING id
            """, [data[c] for c in columns])
            return self.find_by_id(cur.fetchone()['id'], cursor=cur)

    def update(self, card_id: int, data: dict, cursor=None) -> Optional[GiftCard]:
        clause, params = build_set_clause(data, GIFT_CARD_FIELDS)
        with db_cursor(cursor) as cur:
            if clause:
                cur.execute(
                    f"UPDATE gift_cards SET {clause}, updated_at = NOW() WHERE id = %s",
                    params + [card_id]
                )
                if cur.rowcount == 0:
                    return None
            return self.find_by_id(card_id, cursor=cur)

    def update_balance(
        self,
        card_id: int,
        balance,
        status: str,
        last_used: Optional[datetime] = None,
        cursor=None
    ) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE gift_cards
                SET current_balance = %s,
                    status = %s,
                    last_used = COALESCE(%s, last_used),
                    updated_at = NOW()
                WHERE id = %s
            """, (balance, status, last_used, card_id))
            return cur.rowcount > 0

    def delete(self, card_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM gift_card_transactions WHERE gift_card_id = %s", (card_id,))
            cur.execute("UPDATE orders SET gift_card_id = NULL WHERE gift_card_id = %s", (card_id,))
            cur.execute("DELETE FROM gift_cards WHERE id = %s", (card_id,))
            return cur.rowcount > 0

    def expire_overdue(self, now: datetime, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE gift_cards SET status = 'EXPIRED', updated_at = NOW()
                WHERE status = 'ACTIVE' AND expires_at IS NOT NULL AND expires_at < %s
            """, (now,))
            return cur.rowcount

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(
        self,
        card_id: int,
        amount,
        balance_after,
        description: Optional[str] = None,
        order_id: Optional[int] = None,
        created_by: Optional[int] = None,
        cursor=None
    ) -> GiftCardTransaction:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO gift_card_transactions
                    (gift_card_id, order_id, amount, balance_after, description, created_by)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id, gift_card_id, order_id, amount, balance_after, description, created_by, created_at
            """, (card_id, order_id, amount, balance_after, description, created_by))
            return GiftCardTransaction(**cur.fetchone())

    def find_transactions(
        self,
        card_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[GiftCardTransaction], int]:
        where = "1=1"
        params = []
        if card_id is not None:
            where = "t.gift_card_id = %s"
            params.append(card_id)

        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM gift_card_transactions t WHERE {where}", params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                SELECT
                    t.id, t.gift_card_id, t.order_id, t.amount, t.balance_after,
                    t.description, t.created_by, t.created_at,
                    g.code AS gift_card_code
                FROM gift_card_transactions t
                JOIN gift_cards g ON g.id = t.gift_card_id
                WHERE {where}
                ORDER BY t.created_at DESC, t.id DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [GiftCardTransaction(**row) for row in cur.fetchall()], total
