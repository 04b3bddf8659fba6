"""
Transaction Log Repository - promotion redemption lifecycle rows
"""
from typing import List, Optional

from psycopg2.extras import Json

from app.core.database import db_cursor
from app.domain.operations import TransactionLog

TRANSACTION_COLUMNS = """
    id, type, status, user_id, order_id, reference_id, amount,
    idempotency_key, metadata, error_message, created_at, updated_at
"""


class TransactionLogRepository:

    def create(
        self,
        type: str,
        status: str,
        user_id: Optional[int] = None,
        reference_id: Optional[int] = None,
        amount=None,
        idempotency_key: Optional[str] = None,
        metadata: Optional[dict] = None,
        cursor=None
    ) -> TransactionLog:
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO transaction_logs
                    (type, status, user_id, reference_id, amount, idempotency_key, metadata)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {TRANSACTION_COLUMNS}
            """, (
                type, status, user_id, reference_id, amount, idempotency_key,
                Json(metadata) if metadata is not None else None,
            ))
            return TransactionLog(**cur.fetchone())

    def update_status(
        self,
        log_id: int,
        status: str,
        error_message: Optional[str] = None,
        order_id: Optional[int] = None,
        metadata: Optional[dict] = None,
        cursor=None
    ) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE transaction_logs
                SET status = %s,
                    error_message = COALESCE(%s, error_message),
                    order_id = COALESCE(%s, order_id),
                    metadata = COALESCE(%s, metadata),
                    updated_at = NOW()
                WHERE id = %s
            """, (
                status, error_message, order_id,
                Json(metadata) if metadata is not None else None,
                log_id,
            ))
            return cur.rowcount > 0

    def find_by_idempotency_key(
        self,
        key: str,
        type: Optional[str] = None,
        status: Optional[str] = None,
        cursor=None
    ) -> Optional[TransactionLog]:
        conditions = ["idempotency_key = %s"]
        params = [key]
        if type:
            conditions.append("type = %s")
            params.append(type)
        if status:
            conditions.append("status = %s")
            params.append(status)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {TRANSACTION_COLUMNS} FROM transaction_logs
                WHERE {" AND ".join(conditions)}
                ORDER BY created_at DESC
                LIMIT 1
            """, params)
            row = cur.fetchone()
            return TransactionLog(**row) if row else None

    def find_by_user(self, user_id: int, limit: int = 50, cursor=None) -> List[TransactionLog]:
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {TRANSACTION_COLUMNS} FROM transaction_logs
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
            """, (user_id, limit))
            return [TransactionLog(**row) for row in cur.fetchall()]
