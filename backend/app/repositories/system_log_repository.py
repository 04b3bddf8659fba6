"""
System Log Repository - audit trail rows in system_logs
"""
from datetime import datetime
from typing import List, Optional, Tuple

from psycopg2.extras import Json

from app.core.database import db_cursor
from app.domain.operations import SystemLog
from app.repositories.sql import where_clause

SORT_FIELDS = {
    "created_at": "l.created_at",
    "type": "l.type",
    "action": "l.action",
}


class SystemLogRepository:

    def create(
        self,
        type: str,
        action: str,
        description: str,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        metadata: Optional[dict] = None,
        cursor=None
    ) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO system_logs (type, action, description, user_id, ip_address, metadata)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
            """, (
                type, action, description, user_id, ip_address,
                Json(metadata) if metadata is not None else None,
            ))
            return cur.fetchone()['id']

    def find_all(
        self,
        type: Optional[str] = None,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[SystemLog], int]:
        conditions = []
        params = []

        if type:
            conditions.append("l.type = %s")
            params.append(type.upper())
        if action:
            conditions.append("l.action ILIKE %s")
            params.append(f"%{action}%")
        if user_id is not None:
            conditions.append("l.user_id = %s")
            params.append(user_id)
        if start_date:
            conditions.append("l.created_at >= %s")
            params.append(start_date)
        if end_date:
            conditions.append("l.created_at <= %s")
            params.append(end_date)

        where = where_clause(conditions)
        order_column = SORT_FIELDS.get(sort_by, "l.created_at")
        direction = "ASC" if str(sort_order).lower() == "asc" else "DESC"

        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM system_logs l WHERE {where}", params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                SELECT l.id, l.type, l.action, l.description, l.user_id, l.ip_address,
                       l.metadata, l.created_at, u.email AS user_email
                FROM system_logs l
                LEFT JOIN users u ON u.id = l.user_id
                WHERE {where}
                ORDER BY {order_column} {direction}, l.id {direction}
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [SystemLog(**row) for row in cur.fetchall()], total

    def delete_older_than(self, cutoff: datetime, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM system_logs WHERE created_at < %s", (cutoff,))
            return cur.rowcount
