"""
Notification Repository - in-app notifications written by business flows
"""
from app.core.database import db_cursor


class NotificationRepository:

    def create(self, user_id: int, type: str, title: str, message: str, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                INSERT INTO notifications (user_id, type, title, message)
                VALUES (%s, %s, %s, %s)
                RETURNING id
            """, (user_id, type, title, message))
            return cur.fetchone()['id']
