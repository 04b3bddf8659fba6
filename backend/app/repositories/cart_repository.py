"""
Cart Repository - Data Access Layer for carts and cart items

Author: TM3
Date: 2025-11-20
"""
from typing import Optional

from app.core.database import db_cursor
from app.domain.cart import Cart, CartItem

CART_COLUMNS = "id, user_id, session_id, created_at, updated_at"


class CartRepository:
    """
    Repository for shopping carts

    A cart belongs either to a user (user_id) or to a guest session (session_id).
    """

    def _load_items(self, cur, cart_id: int):
        cur.execute("""
            SELECT
                ci.id, ci.cart_id, ci.product_id, ci.variant_id, ci.quantity, ci.price,
                p.name AS product_name,
                p.slug AS product_slug,
                p.image_urls[1] AS image_url,
                pv.stock AS stock,
                (
                    SELECT string_agg(vv.value, ' / ' ORDER BY vg.position, vg.id)
                    FROM variant_value_links l
                    JOIN variant_values vv ON vv.id = l.variant_value_id
                    JOIN variant_groups vg ON vg.id = vv.variant_group_id
                    WHERE l.variant_id = ci.variant_id
                ) AS variant_label
            FROM cart_items ci
            JOIN products p ON p.id = ci.product_id
            LEFT JOIN product_variants pv ON pv.id = ci.variant_id
            WHERE ci.cart_id = %s
            ORDER BY ci.id
        """, (cart_id,))
        return [CartItem(**row) for row in cur.fetchall()]

    def _find(self, column: str, value, cursor=None) -> Optional[Cart]:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {CART_COLUMNS} FROM carts WHERE {column} = %s", (value,))
            row = cur.fetchone()
            if not row:
                return None
            return Cart(**row, items=self._load_items(cur, row['id']))

    def find_by_id(self, cart_id: int, cursor=None) -> Optional[Cart]:
        return self._find("id", cart_id, cursor=cursor)

    def find_by_user(self, user_id: int, cursor=None) -> Optional[Cart]:
        return self._find("user_id", user_id, cursor=cursor)

    def find_by_session(self, session_id: str, cursor=None) -> Optional[Cart]:
        return self._find("session_id", session_id, cursor=cursor)

    def create(self, user_id: Optional[int] = None, session_id: Optional[str] = None, cursor=None) -> Cart:
        """
        Insert the owner's cart, or return the one a concurrent request created first

        user_id and session_id are each unique, so a lost race re-selects instead of failing.
        """
        column, value = ("user_id", user_id) if user_id is not None else ("session_id", session_id)
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO carts (user_id, session_id)
                VALUES (%s, %s)
                ON CONFLICT ({column}) DO NOTHING
                RETURNING {CART_COLUMNS}
            """, (user_id, session_id))
            row = cur.fetchone()
            if row:
                return Cart(**row, items=[])
        return self._find(column, value, cursor=cursor)

    def find_item(self, item_id: int, cursor=None) -> Optional[CartItem]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT ci.id, ci.cart_id, ci.product_id, ci.variant_id, ci.quantity, ci.price,
                       pv.stock AS stock
                FROM cart_items ci
                LEFT JOIN product_variants pv ON pv.id = ci.variant_id
                WHERE ci.id = %s
            """, (item_id,))
            row = cur.fetchone()
            return CartItem(**row) if row else None

    def add_item(
        self,
        cart_id: int,
        product_id: int,
        variant_id: Optional[int],
        quantity: int,
        price,
        cursor=None
    ) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO cart_items (cart_id, product_id, variant_id, quantity, price)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
            """, (cart_id, product_id, variant_id, quantity, price))
            item_id = cur.fetchone()['id']
            cur.execute("UPDATE carts SET updated_at = NOW() WHERE id = %s", (cart_id,))
            return item_id

    def update_item_quantity(self, item_id: int, quantity: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE cart_items SET quantity = %s, updated_at = NOW()
                WHERE id = %s
            """, (quantity, item_id))
            return cur.rowcount > 0

    def delete_item(self, item_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM cart_items WHERE id = %s", (item_id,))
            return cur.rowcount > 0

    def clear(self, cart_id: int, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM cart_items WHERE cart_id = %s", (cart_id,))
            return cur.rowcount

    def delete(self, cart_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM cart_items WHERE cart_id = %s", (cart_id,))
            cur.execute("DELETE FROM carts WHERE id = %s", (cart_id,))
            return cur.rowcount > 0
