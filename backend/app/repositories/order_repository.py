"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders, order items, timeline entries
and payments, and returns Order domain models.

Author: TM3
Date: 2025-10-17
Updated: 2025-11-20 (storefront orders, timeline, payments)
"""
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from app.core.database import db_cursor
from app.domain.order import Order, OrderItem, OrderCustomer, Payment, TimelineEntry
from app.repositories.sql import build_order_by, where_clause

ORDER_SELECT = """
    SELECT
        o.id, o.order_number, o.user_id,
        o.subtotal, o.shipping_cost, o.tax_amount, o.discount_amount, o.gift_card_amount, o.total,
        o.status, o.coupon_id, o.gift_card_id,
        o.shipping_address_id, o.billing_address_id,
        o.tracking_number, o.payment_method, o.notes, o.admin_notes,
        o.created_at, o.updated_at,
        u.first_name AS customer_first_name,
        u.last_name AS customer_last_name,
        u.email AS customer_email
    FROM orders o
    LEFT JOIN users u ON o.user_id = u.id
"""

ORDER_FIELDS = [
    "order_number", "user_id", "subtotal", "shipping_cost", "tax_amount",
    "discount_amount", "gift_card_amount", "total", "status", "coupon_id",
    "gift_card_id", "shipping_address_id", "billing_address_id",
    "payment_method", "notes",
]

SORT_FIELDS = {
    "created_at": "o.created_at",
    "total": "o.total",
    "order_number": "o.order_number",
    "status": "o.status",
}

ADDRESS_SELECT = """
    SELECT id, title, full_name, phone, address_line, city, district, postal_code, country
    FROM addresses WHERE id = %s
"""


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with related data (customer, items, timeline, payments).
    """

    @staticmethod
    def _map_row_to_order(row: dict, **related) -> Order:
        data = dict(row)
        customer = None
        if data.get('user_id'):
            customer = OrderCustomer(
                id=data['user_id'],
                first_name=data.pop('customer_first_name', None),
                last_name=data.pop('customer_last_name', None),
                email=data.pop('customer_email', None),
            )
        else:
            for key in ('customer_first_name', 'customer_last_name', 'customer_email'):
                data.pop(key, None)
        data.update(related)
        return Order(**data, customer=customer)

    def _load_items(self, cur, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        """Get ALL order items for these orders in ONE QUERY"""
        items_by_order: Dict[int, List[OrderItem]] = {oid: [] for oid in order_ids}
        if not order_ids:
            return items_by_order

        cur.execute("""
            SELECT
                oi.id, oi.order_id, oi.product_id, oi.variant_id,
                oi.product_name, oi.variant_label, oi.quantity, oi.price, oi.total,
                p.slug AS product_slug
            FROM order_items oi
            LEFT JOIN products p ON oi.product_id = p.id
            WHERE oi.order_id = ANY(%s)
            ORDER BY oi.order_id, oi.id
        """, (list(order_ids),))

        for item in cur.fetchall():
            items_by_order.setdefault(item['order_id'], []).append(OrderItem(**item))
        return items_by_order

    def find_by_id(self, order_id: int, user_id: Optional[int] = None, cursor=None) -> Optional[Order]:
        """
        Find order by ID with customer, items, timeline, payments and addresses

        Args:
            order_id: Internal order ID
            user_id: When given, the order must belong to this user

        Returns:
            Order with all related data or None if not found
        """
        with db_cursor(cursor) as cur:
            if user_id is None:
                cur.execute(f"{ORDER_SELECT} WHERE o.id = %s", (order_id,))
            else:
                cur.execute(f"{ORDER_SELECT} WHERE o.id = %s AND o.user_id = %s", (order_id, user_id))

            row = cur.fetchone()
            if not row:
                return None

            items = self._load_items(cur, [order_id])[order_id]
            timeline = self.get_timeline(order_id, cursor=cur)
            payments = self.get_payments(order_id, cursor=cur)

            shipping_address = None
            billing_address = None
            if row.get('shipping_address_id'):
                cur.execute(ADDRESS_SELECT, (row['shipping_address_id'],))
                shipping_address = cur.fetchone()
            if row.get('billing_address_id'):
                cur.execute(ADDRESS_SELECT, (row['billing_address_id'],))
                billing_address = cur.fetchone()

            return self._map_row_to_order(
                row,
                items=items,
                timeline=timeline,
                payments=payments,
                shipping_address=dict(shipping_address) if shipping_address else None,
                billing_address=dict(billing_address) if billing_address else None,
            )

    def find_all(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_total: Optional[float] = None,
        max_total: Optional[float] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters

        Args:
            search: Order number, customer email, first or last name
            status: Filter by order status ("all" disables the filter)
            user_id: Only orders of this user
            date_from / date_to: Creation date range (inclusive)
            min_total / max_total: Order total range
            sort_by: created_at | total | order_number | status
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of orders, total count)
        """
        conditions = []
        params: List[Any] = []

        if status and status.lower() != "all":
            conditions.append("o.status = %s")
            params.append(status.upper())

        if user_id is not None:
            conditions.append("o.user_id = %s")
            params.append(user_id)

        if date_from:
            conditions.append("o.created_at >= %s")
            params.append(date_from)

        if date_to:
            conditions.append("o.created_at < (%s::date + INTERVAL '1 day')")
            params.append(date_to)

        if min_total is not None:
            conditions.append("o.total >= %s")
            params.append(min_total)

        if max_total is not None:
            conditions.append("o.total <= %s")
            params.append(max_total)

        if search:
            conditions.append("""(
                o.order_number ILIKE %s OR
                u.email ILIKE %s OR
                u.first_name ILIKE %s OR
                u.last_name ILIKE %s
            )""")
            search_param = f"%{search}%"
            params.extend([search_param] * 4)

        where = where_clause(conditions)
        order_by = build_order_by(sort_by, sort_order, SORT_FIELDS, "created_at")

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT COUNT(*) AS total
                FROM orders o
                LEFT JOIN users u ON o.user_id = u.id
                WHERE {where}
            """, params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                {ORDER_SELECT}
                WHERE {where}
                ORDER BY {order_by}
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cur.fetchall()

            if not rows:
                return [], total

            items = self._load_items(cur, [row['id'] for row in rows])
            orders = [self._map_row_to_order(row, items=items.get(row['id'], [])) for row in rows]
            return orders, total

    def order_number_exists(self, order_number: str, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("SELECT 1 FROM orders WHERE order_number = %s", (order_number,))
            return cur.fetchone() is not None

    def create(self, data: dict, cursor=None) -> int:
        columns = [f for f in ORDER_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO orders ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING id
            """, [data[c] for c in columns])
            return cur.fetchone()['id']

    def add_item(self, order_id: int, item: dict, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO order_items
                    (order_id, product_id, variant_id, product_name, variant_label, quantity, price, total)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
            """, (
                order_id,
                item.get('product_id'),
                item.get('variant_id'),
                item['product_name'],
                item.get('variant_label'),
                item['quantity'],
                item['price'],
                item['total'],
            ))
            return cur.fetchone()['id']

    def get_items(self, order_id: int, cursor=None) -> List[OrderItem]:
        with db_cursor(cursor) as cur:
            return self._load_items(cur, [order_id])[order_id]

    def find_item(self, order_item_id: int, cursor=None) -> Optional[OrderItem]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT id, order_id, product_id, variant_id, product_name, variant_label,
                       quantity, price, total
                FROM order_items WHERE id = %s
            """, (order_item_id,))
            row = cur.fetchone()
            return OrderItem(**row) if row else None

    def update_status(
        self,
        order_id: int,
        status: str,
        tracking_number: Optional[str] = None,
        cursor=None
    ) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE orders
                SET status = %s,
                    tracking_number = COALESCE(%s, tracking_number),
                    updated_at = NOW()
                WHERE id = %s
            """, (status, tracking_number, order_id))
            return cur.rowcount > 0

    def update_admin_notes(self, order_id: int, admin_notes: Optional[str], cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE orders SET admin_notes = %s, updated_at = NOW()
                WHERE id = %s
            """, (admin_notes, order_id))
            return cur.rowcount > 0

    def delete(self, order_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM order_timeline WHERE order_id = %s", (order_id,))
            cur.execute("DELETE FROM payments WHERE order_id = %s", (order_id,))
            cur.execute("DELETE FROM return_requests WHERE order_id = %s", (order_id,))
            cur.execute("DELETE FROM order_items WHERE order_id = %s", (order_id,))
            cur.execute("DELETE FROM orders WHERE id = %s", (order_id,))
            return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    def add_timeline(
        self,
        order_id: int,
        status: str,
        description: str,
        created_by: Optional[int] = None,
        cursor=None
    ) -> TimelineEntry:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO order_timeline (order_id, status, description, created_by)
                VALUES (%s, %s, %s, %s)
                RETURNING id, order_id, status, description, created_by, created_at
            """, (order_id, status, description, created_by))
            return TimelineEntry(**cur.fetchone())

    def get_timeline(self, order_id: int, cursor=None) -> List[TimelineEntry]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT id, order_id, status, description, created_by, created_at
                FROM order_timeline
                WHERE order_id = %s
                ORDER BY created_at ASC, id ASC
            """, (order_id,))
            return [TimelineEntry(**row) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def create_payment(
        self,
        order_id: int,
        amount,
        method: str,
        status: str,
        provider_payment_id: Optional[str] = None,
        cursor=None
    ) -> Payment:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO payments (order_id, amount, method, status, provider_payment_id)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id, order_id, amount, method, status, provider_payment_id, created_at
            """, (order_id, amount, method, status, provider_payment_id))
            return Payment(**cur.fetchone())

    def get_payments(self, order_id: int, cursor=None) -> List[Payment]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT id, order_id, amount, method, status, provider_payment_id, created_at
                FROM payments
                WHERE order_id = %s
                ORDER BY id
            """, (order_id,))
            return [Payment(**row) for row in cur.fetchall()]

    def update_payments_status(self, order_id: int, status: str, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE payments SET status = %s, updated_at = NOW()
                WHERE order_id = %s
            """, (status, order_id))
            return cur.rowcount

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def get_stats(self, cursor=None) -> Dict[str, Any]:
        """
        Order statistics for the dashboard overview

        Returns:
            {total_orders, total_sales, orders_by_status}
        """
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT
                    COUNT(*) AS total_orders,
                    COALESCE(SUM(total) FILTER (WHERE status NOT IN ('CANCELLED', 'REFUNDED')), 0) AS total_sales
                FROM orders
            """)
            totals = cur.fetchone()

            cur.execute("""
                SELECT status, COUNT(*) AS count
                FROM orders
                GROUP BY status
                ORDER BY status
            """)
            by_status = {row['status']: row['count'] for row in cur.fetchall()}

            return {
                "total_orders": totals['total_orders'],
                "total_sales": float(totals['total_sales'] or 0),
                "orders_by_status": by_status,
            }

    def get_daily_sales(self, days: int = 30, cursor=None) -> List[dict]:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT
                    DATE(created_at) AS day,
                    COUNT(*) AS orders,
                    COALESCE(SUM(total), 0) AS revenue
                FROM orders
                WHERE created_at >= NOW() - make_interval(days => %s)
                  AND status NOT IN ('CANCELLED', 'REFUNDED')
                GROUP BY DATE(created_at)
                ORDER BY day
            """, (days,))
            return [
                {"date": row['day'].isoformat(), "orders": row['orders'], "revenue": float(row['revenue'])}
                for row in cur.fetchall()
            ]
