"""
User Repository - Data Access Layer for users and addresses

Author: TM3
Date: 2025-11-04
"""
from datetime import datetime
from typing import List, Optional, Tuple

from psycopg2.errors import UniqueViolation

from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import ConflictError
from buysell.domain.user import User, Address

USER_COLUMNS = """
    id, email, password_hash, first_name, last_name, phone, avatar_url,
    role, seller_status, store_name, is_active, email_verified,
    last_login_at, created_at, updated_at
"""

ADDRESS_COLUMNS = """
    id, user_id, label, full_name, phone, address_line1, address_line2,
    city, region, country, postal_code, is_default, created_at
"""


class UserRepository:
    """
    Repository for user accounts

    Returns User domain models; the password hash is loaded so the auth
    service can verify it but never leaves the domain model's dump.
    """

    @staticmethod
    def _map_row_to_user(row: dict) -> User:
        return User(
            id=row['id'],
            email=row['email'],
            password_hash=row.get('password_hash'),
            first_name=row.get('first_name'),
            last_name=row.get('last_name'),
            phone=row.get('phone'),
            avatar_url=row.get('avatar_url'),
            role=row['role'],
            seller_status=row.get('seller_status'),
            store_name=row.get('store_name'),
            is_active=row['is_active'],
            email_verified=row.get('email_verified', False),
            last_login_at=row.get('last_login_at'),
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, user_id: int) -> Optional[User]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return self._map_row_to_user(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE LOWER(email) = LOWER(%s)",
                (email,)
            )
            row = cursor.fetchone()
            return self._map_row_to_user(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def create(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        role: str = "customer",
        store_name: Optional[str] = None
    ) -> User:
        """
        Insert a new user

        Sellers start with seller_status='pending' until an admin approves them.

        Raises:
            ConflictError: email already registered
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        seller_status = "pending" if role == "seller" else None

        try:
            cursor.execute(f"""
                INSERT INTO users (
                    email, password_hash, first_name, last_name, phone,
                    role, seller_status, store_name, is_active, email_verified,
                    created_at, updated_at
                )
                VALUES (LOWER(%s), %s, %s, %s, %s, %s, %s, %s, TRUE, FALSE, NOW(), NOW())
                RETURNING {USER_COLUMNS}
            """, (email, password_hash, first_name, last_name, phone, role, seller_status, store_name))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_user(row)

        except UniqueViolation:
            conn.rollback()
            raise ConflictError("An account with this email already exists")
        finally:
            cursor.close()
            conn.close()

    def update_fields(self, user_id: int, fields: dict) -> Optional[User]:
        """
        Update the given columns

        Args:
            user_id: User to update
            fields: {column: value}; callers pass only whitelisted columns

        Returns:
            Updated user or None if not found
        """
        if not fields:
            return self.find_by_id(user_id)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = [f"{column} = %s" for column in fields]
            update_fields.append("updated_at = NOW()")
            values = list(fields.values()) + [user_id]

            cursor.execute(f"""
                UPDATE users
                SET {', '.join(update_fields)}
                WHERE id = %s
                RETURNING {USER_COLUMNS}
            """, values)

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_user(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def update_password(self, user_id: int, password_hash: str) -> None:
        """Set a new password hash and clear any pending reset token"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE users
                SET password_hash = %s,
                    reset_token_hash = NULL,
                    reset_token_expires_at = NULL,
                    updated_at = NOW()
                WHERE id = %s
            """, (password_hash, user_id))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def touch_last_login(self, user_id: int) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("UPDATE users SET last_login_at = NOW() WHERE id = %s", (user_id,))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def set_reset_token(self, user_id: int, token_hash: str, expires_at: datetime) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE users
                SET reset_token_hash = %s, reset_token_expires_at = %s
                WHERE id = %s
            """, (token_hash, expires_at, user_id))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def find_by_reset_token(self, token_hash: str) -> Optional[User]:
        """User owning a reset token that has not expired yet"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE reset_token_hash = %s
                  AND reset_token_expires_at > NOW()
            """, (token_hash,))
            row = cursor.fetchone()
            return self._map_row_to_user(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        seller_status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[User], int]:
        """
        Find users with filters (admin listing)

        Returns:
            Tuple of (list of users, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if role:
                conditions.append("role = %s")
                params.append(role)

            if is_active is not None:
                conditions.append("is_active = %s")
                params.append(is_active)

            if seller_status:
                conditions.append("seller_status = %s")
                params.append(seller_status)

            if search:
                conditions.append("(email ILIKE %s OR first_name ILIKE %s OR last_name ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term, search_term])

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"SELECT COUNT(*) as total FROM users WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            users = [self._map_row_to_user(row) for row in cursor.fetchall()]
            return users, total

        finally:
            cursor.close()
            conn.close()


class AddressRepository:
    """Repository for user addresses"""

    @staticmethod
    def _map_row_to_address(row: dict) -> Address:
        return Address(**{key: row.get(key) for key in Address.model_fields if key in row})

    def find_by_user(self, user_id: int) -> List[Address]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ADDRESS_COLUMNS}
                FROM addresses
                WHERE user_id = %s
                ORDER BY is_default DESC, created_at DESC
            """, (user_id,))
            return [self._map_row_to_address(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_for_user(self, address_id: int, user_id: int) -> Optional[Address]:
        """Address only if it belongs to user_id"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ADDRESS_COLUMNS}
                FROM addresses
                WHERE id = %s AND user_id = %s
            """, (address_id, user_id))
            row = cursor.fetchone()
            return self._map_row_to_address(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def create(self, user_id: int, data: dict) -> Address:
        """Insert an address; a new default replaces the previous one"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if data.get('is_default'):
                cursor.execute(
                    "UPDATE addresses SET is_default = FALSE WHERE user_id = %s AND is_default",
                    (user_id,)
                )

            columns = ['user_id'] + list(data.keys())
            placeholders = ", ".join(["%s"] * len(columns))
            cursor.execute(f"""
                INSERT INTO addresses ({', '.join(columns)}, created_at, updated_at)
                VALUES ({placeholders}, NOW(), NOW())
                RETURNING {ADDRESS_COLUMNS}
            """, [user_id] + list(data.values()))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_address(row)

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update(self, address_id: int, user_id: int, data: dict) -> Optional[Address]:
        if not data:
            return self.find_for_user(address_id, user_id)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if data.get('is_default'):
                cursor.execute(
                    "UPDATE addresses SET is_default = FALSE WHERE user_id = %s AND id <> %s",
                    (user_id, address_id)
                )

            update_fields = [f"{column} = %s" for column in data]
            update_fields.append("updated_at = NOW()")
            cursor.execute(f"""
                UPDATE addresses
                SET {', '.join(update_fields)}
                WHERE id = %s AND user_id = %s
                RETURNING {ADDRESS_COLUMNS}
            """, list(data.values()) + [address_id, user_id])

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_address(row) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete(self, address_id: int, user_id: int) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "DELETE FROM addresses WHERE id = %s AND user_id = %s RETURNING id",
                (address_id, user_id)
            )
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()
