"""
User Repository - Data Access Layer for users and addresses

Author: TM3
Date: 2025-11-20
"""
from typing import List, Optional

from app.core.database import db_cursor
from app.domain.user import User, Address
from app.repositories.sql import build_set_clause

USER_COLUMNS = "id, first_name, last_name, email, phone, role, created_at, updated_at"

ADDRESS_COLUMNS = """
    id, user_id, title, full_name, phone, address_line, city, district,
    postal_code, country, is_default, created_at
"""

ADDRESS_FIELDS = [
    "title", "full_name", "phone", "address_line", "city",
    "district", "postal_code", "country", "is_default",
]


class UserRepository:
    """
    Repository for user accounts

    Password hashes never leave this class except through get_credentials().
    """

    def find_by_id(self, user_id: int, cursor=None) -> Optional[User]:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cur.fetchone()
            return User(**row) if row else None

    def find_by_email(self, email: str, cursor=None) -> Optional[User]:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE LOWER(email) = LOWER(%s)", (email,))
            row = cur.fetchone()
            return User(**row) if row else None

    def get_credentials(self, email: str, cursor=None) -> Optional[dict]:
        """Return {id, email, first_name, last_name, role, password_hash} or None"""
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT id, email, first_name, last_name, role, password_hash
                FROM users
                WHERE LOWER(email) = LOWER(%s)
            """, (email,))
            return cur.fetchone()

    def get_password_hash(self, user_id: int, cursor=None) -> Optional[str]:
        with db_cursor(cursor) as cur:
            cur.execute("SELECT password_hash FROM users WHERE id = %s", (user_id,))
            row = cur.fetchone()
            return row['password_hash'] if row else None

    def create(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        role: str = "USER",
        cursor=None
    ) -> User:
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO users (first_name, last_name, email, password_hash, role)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {USER_COLUMNS}
            """, (first_name, last_name, email.lower(), password_hash, role))
            return User(**cur.fetchone())

    def update_profile(self, user_id: int, fields: dict, cursor=None) -> Optional[User]:
        clause, params = build_set_clause(fields, ["first_name", "last_name", "phone"])
        if not clause:
            return self.find_by_id(user_id, cursor=cursor)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                UPDATE users SET {clause}, updated_at = NOW()
                WHERE id = %s
                RETURNING {USER_COLUMNS}
            """, params + [user_id])
            row = cur.fetchone()
            return User(**row) if row else None

    def update_password(self, user_id: int, password_hash: str, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE users SET password_hash = %s, updated_at = NOW()
                WHERE id = %s
            """, (password_hash, user_id))
            return cur.rowcount > 0

    def count_new_users(self, days: int = 30, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                SELECT COUNT(*) AS total FROM users
                WHERE created_at >= NOW() - make_interval(days => %s)
            """, (days,))
            return cur.fetchone()['total']


class AddressRepository:
    """Repository for user addresses; every query is scoped by user_id"""

    def find_for_user(self, user_id: int, cursor=None) -> List[Address]:
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {ADDRESS_COLUMNS} FROM addresses
                WHERE user_id = %s
                ORDER BY is_default DESC, id
            """, (user_id,))
            return [Address(**row) for row in cur.fetchall()]

    def find_by_id(self, address_id: int, user_id: Optional[int] = None, cursor=None) -> Optional[Address]:
        with db_cursor(cursor) as cur:
            if user_id is None:
                cur.execute(f"SELECT {ADDRESS_COLUMNS} FROM addresses WHERE id = %s", (address_id,))
            else:
                cur.execute(
                    f"SELECT {ADDRESS_COLUMNS} FROM addresses WHERE id = %s AND user_id = %s",
                    (address_id, user_id)
                )
            row = cur.fetchone()
            return Address(**row) if row else None

    def clear_default(self, user_id: int, cursor=None):
        with db_cursor(cursor) as cur:
            cur.execute("UPDATE addresses SET is_default = FALSE WHERE user_id = %s AND is_default", (user_id,))

    def create(self, user_id: int, data: dict, cursor=None) -> Address:
        columns = [f for f in ADDRESS_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * (len(columns) + 1))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO addresses (user_id, {", ".join(columns)})
                VALUES ({placeholders})
                RETURNING {ADDRESS_COLUMNS}
            """, [user_id] + [data[c] for c in columns])
            return Address(**cur.fetchone())

    def update(self, address_id: int, user_id: int, data: dict, cursor=None) -> Optional[Address]:
        clause, params = build_set_clause(data, ADDRESS_FIELDS)
        if not clause:
            return self.find_by_id(address_id, user_id, cursor=cursor)

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                UPDATE addresses SET {clause}, updated_at = NOW()
                WHERE id = %s AND user_id = %s
                RETURNING {ADDRESS_COLUMNS}
            """, params + [address_id, user_id])
            row = cur.fetchone()
            return Address(**row) if row else None

    def delete(self, address_id: int, user_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM addresses WHERE id = %s AND user_id = %s", (address_id, user_id))
            return cur.rowcount > 0
