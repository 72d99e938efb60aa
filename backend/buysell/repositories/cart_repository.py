"""
Cart Repository - Data Access Layer for cart items

Author: TM3
Date: 2025-11-05
"""
from typing import List, Optional

from buysell.core.database import get_db_connection_dict
from buysell.domain.cart import CartItem

CART_COLUMNS = """
    ci.id, ci.user_id, ci.product_id, ci.quantity, ci.is_active,
    ci.created_at, ci.updated_at,
    p.name as product_name, p.slug as product_slug,
    p.images->>0 as product_image, p.price as unit_price,
    p.quantity as stock_quantity, p.track_quantity,
    p.is_published, p.is_available, p.seller_id
"""


class CartRepository:
    """Repository for a user's active cart lines"""

    @staticmethod
    def _map_row_to_item(row: dict) -> CartItem:
        return CartItem(
            id=row['id'],
            user_id=row['user_id'],
            product_id=row['product_id'],
            quantity=row['quantity'],
            is_active=row.get('is_active', True),
            product_name=row.get('product_name'),
            product_slug=row.get('product_slug'),
            product_image=row.get('product_image'),
            unit_price=row.get('unit_price') or 0,
            stock_quantity=row.get('stock_quantity') or 0,
            track_quantity=row.get('track_quantity', True),
            is_published=row.get('is_published', True),
            is_available=row.get('is_available', True),
            seller_id=row.get('seller_id'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def find_active(self, user_id: int) -> List[CartItem]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {CART_COLUMNS}
                FROM cart_items ci
                JOIN products p ON p.id = ci.product_id
                WHERE ci.user_id = %s AND ci.is_active
                ORDER BY ci.created_at
            """, (user_id,))
            return [self._map_row_to_item(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_item(self, item_id: int, user_id: int) -> Optional[CartItem]:
        """Active line only if it belongs to user_id"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {CART_COLUMNS}
                FROM cart_items ci
                JOIN products p ON p.id = ci.product_id
                WHERE ci.id = %s AND ci.user_id = %s AND ci.is_active
            """, (item_id, user_id))
            row = cursor.fetchone()
            return self._map_row_to_item(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_product(self, user_id: int, product_id: int) -> Optional[CartItem]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {CART_COLUMNS}
                FROM cart_items ci
                JOIN products p ON p.id = ci.product_id
                WHERE ci.user_id = %s AND ci.product_id = %s AND ci.is_active
            """, (user_id, product_id))
            row = cursor.fetchone()
            return self._map_row_to_item(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def count_lines(self, user_id: int) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT COUNT(*) as total FROM cart_items WHERE user_id = %s AND is_active",
                (user_id,)
            )
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def total_quantity(self, user_id: int) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT COALESCE(SUM(quantity), 0) as total FROM cart_items WHERE user_id = %s AND is_active",
                (user_id,)
            )
            return int(cursor.fetchone()['total'])

        finally:
            cursor.close()
            conn.close()

    def add(self, user_id: int, product_id: int, quantity: int) -> int:
        """Insert a new active line, returns its id"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO cart_items (user_id, product_id, quantity, is_active, created_at, updated_at)
                VALUES (%s, %s, %s, TRUE, NOW(), NOW())
                RETURNING id
            """, (user_id, product_id, quantity))
            item_id = cursor.fetchone()['id']
            conn.commit()
            return item_id

        finally:
            cursor.close()
            conn.close()

    def set_quantity(self, item_id: int, quantity: int) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "UPDATE cart_items SET quantity = %s, updated_at = NOW() WHERE id = %s",
                (quantity, item_id)
            )
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def deactivate(self, item_id: int, user_id: int) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE cart_items SET is_active = FALSE, updated_at = NOW()
                WHERE id = %s AND user_id = %s AND is_active
                RETURNING id
            """, (item_id, user_id))
            removed = cursor.fetchone() is not None
            conn.commit()
            return removed

        finally:
            cursor.close()
            conn.close()

    def clear(self, user_id: int) -> int:
        """Deactivate every active line, returns how many"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE cart_items SET is_active = FALSE, updated_at = NOW()
                WHERE user_id = %s AND is_active
            """, (user_id,))
            cleared = cursor.rowcount
            conn.commit()
            return cleared

        finally:
            cursor.close()
            conn.close()
