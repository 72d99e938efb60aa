"""
Coupon Repository - Data Access Layer for discount codes
"""
from typing import List, Optional

from psycopg2.errors import UniqueViolation

from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import ConflictError
from buysell.domain.order import Coupon

COUPON_COLUMNS = """
    id, code, description, discount_type, discount_value, min_order_amount,
    max_discount_amount, usage_limit, used_count, starts_at, expires_at,
    is_active, created_at
"""


class CouponRepository:

    @staticmethod
    def _map_row_to_coupon(row: dict) -> Coupon:
        return Coupon(**{key: row[key] for key in Coupon.model_fields if key in row})

    def find_by_code(self, code: str) -> Optional[Coupon]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {COUPON_COLUMNS} FROM coupons WHERE UPPER(code) = UPPER(%s)",
                (code.strip(),)
            )
            row = cursor.fetchone()
            return self._map_row_to_coupon(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(self, active_only: bool = False) -> List[Coupon]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            where_clause = "WHERE is_active" if active_only else ""
            cursor.execute(f"SELECT {COUPON_COLUMNS} FROM coupons {where_clause} ORDER BY created_at DESC")
            return [self._map_row_to_coupon(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def create(self, data: dict) -> Coupon:
        """
        Raises:
            ConflictError: code already exists
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            columns = list(data.keys())
            placeholders = ", ".join(["%s"] * len(columns))
            cursor.execute(f"""
                INSERT INTO coupons ({', '.join(columns)}, used_count, is_active, created_at)
                VALUES ({placeholders}, 0, TRUE, NOW())
                RETURNING {COUPON_COLUMNS}
            """, list(data.values()))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_coupon(row)

        except UniqueViolation:
            conn.rollback()
            raise ConflictError(f"Coupon code '{data.get('code')}' already exists")
        finally:
            cursor.close()
            conn.close()
