"""
Notification Repository - in-app notifications
"""
from typing import List, Optional, Tuple

from psycopg2.extras import Json

from buysell.core.database import get_db_connection_dict
from buysell.domain.review import Notification

NOTIFICATION_COLUMNS = "id, user_id, type, title, message, data, is_read, read_at, created_at"


class NotificationRepository:

    @staticmethod
    def _map_row_to_notification(row: dict) -> Notification:
        return Notification(**{key: row.get(key) for key in Notification.model_fields})

    def create(self, user_id: int, type: str, title: str, message: str,
               data: Optional[dict] = None) -> Notification:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO notifications (user_id, type, title, message, data, is_read, created_at)
                VALUES (%s, %s, %s, %s, %s, FALSE, NOW())
                RETURNING {NOTIFICATION_COLUMNS}
            """, (user_id, type, title, message, Json(data or {})))
            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_notification(row)

        finally:
            cursor.close()
            conn.close()

    def find_by_user(
        self,
        user_id: int,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Notification], int]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            where_clause = "user_id = %s AND NOT is_read" if unread_only else "user_id = %s"

            cursor.execute(f"SELECT COUNT(*) as total FROM notifications WHERE {where_clause}", (user_id,))
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {NOTIFICATION_COLUMNS}
                FROM notifications
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, (user_id, limit, offset))

            notifications = [self._map_row_to_notification(row) for row in cursor.fetchall()]
            return notifications, total

        finally:
            cursor.close()
            conn.close()

    def count_unread(self, user_id: int) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT COUNT(*) as total FROM notifications WHERE user_id = %s AND NOT is_read",
                (user_id,)
            )
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def mark_read(self, notification_id: int, user_id: int) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE notifications SET is_read = TRUE, read_at = COALESCE(read_at, NOW())
                WHERE id = %s AND user_id = %s
                RETURNING id
            """, (notification_id, user_id))
            found = cursor.fetchone() is not None
            conn.commit()
            return found

        finally:
            cursor.close()
            conn.close()

    def mark_all_read(self, user_id: int) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE notifications SET is_read = TRUE, read_at = NOW()
                WHERE user_id = %s AND NOT is_read
            """, (user_id,))
            updated = cursor.rowcount
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()
