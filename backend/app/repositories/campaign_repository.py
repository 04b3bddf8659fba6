"""
Campaign Repository

Author: TM3
Date: 2025-11-20
"""
from datetime import datetime
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.domain.promotion import Campaign
from app.repositories.sql import build_set_clause, where_clause

CAMPAIGN_COLUMNS = """
    id, name, slug, description, type, value, min_order_amount, category_id,
    product_id, image_url, start_date, end_date, is_active, created_at, updated_at
"""

CAMPAIGN_FIELDS = [
    "name", "slug", "description", "type", "value", "min_order_amount",
    "category_id", "product_id", "image_url", "start_date", "end_date", "is_active",
]


class CampaignRepository:

    def find_by_id(self, campaign_id: int, cursor=None) -> Optional[Campaign]:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {CAMPAIGN_COLUMNS} FROM campaigns WHERE id = %s", (campaign_id,))
            row = cur.fetchone()
            return Campaign(**row) if row else None

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            if exclude_id is None:
                cur.execute("SELECT 1 FROM campaigns WHERE slug = %s", (slug,))
            else:
                cur.execute("SELECT 1 FROM campaigns WHERE slug = %s AND id <> %s", (slug, exclude_id))
            return cur.fetchone() is not None

    def find_all(
        self,
        search: Optional[str] = None,
        type: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[Campaign], int]:
        conditions = []
        params = []

        if search:
            conditions.append("(name ILIKE %s OR description ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])
        if type:
            conditions.append("type = %s")
            params.append(type.upper())
        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        where = where_clause(conditions)

        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM campaigns WHERE {where}", params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                SELECT {CAMPAIGN_COLUMNS} FROM campaigns
                WHERE {where}
                ORDER BY start_date DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [Campaign(**row) for row in cur.fetchall()], total

    def find_running(self, now: datetime, cursor=None) -> List[Campaign]:
        """Active campaigns whose window contains now"""
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {CAMPAIGN_COLUMNS} FROM campaigns
                WHERE is_active = TRUE AND start_date <= %s AND end_date >= %s
                ORDER BY end_date ASC
            """, (now, now))
            return [Campaign(**row) for row in cur.fetchall()]

    def create(self, data: dict, cursor=None) -> Campaign:
        columns = [f for f in CAMPAIGN_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO campaigns ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING {CAMPAIGN_COLUMNS}
            """, [data[c] for c in columns])
            return Campaign(**cur.fetchone())

    def update(self, campaign_id: int, data: dict, cursor=None) -> Optional[Campaign]:
        clause, params = build_set_clause(data, CAMPAIGN_FIELDS)
        if not clause:
            return self.find_by_id(campaign_id, cursor=cursor)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                UPDATE campaigns SET {clause}, updated_at = NOW()
                WHERE id = %s
                RETURNING {CAMPAIGN_COLUMNS}
            """, params + [campaign_id])
            row = cur.fetchone()
            return Campaign(**row) if row else None

    def delete(self, campaign_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM campaigns WHERE id = %s", (campaign_id,))
            return cur.rowcount > 0
