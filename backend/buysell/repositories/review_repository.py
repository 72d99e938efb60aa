"""
Review Repository - Data Access Layer for product reviews

Author: TM3
Date: 2025-11-07
"""
from typing import List, Optional, Tuple

from psycopg2.errors import UniqueViolation

from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import ConflictError
from buysell.domain.review import Review

REVIEW_COLUMNS = """
    r.id, r.product_id, r.user_id, r.order_id, r.rating, r.title, r.comment,
    r.status, r.is_verified_purchase, r.created_at, r.updated_at,
    u.first_name as author_name
"""


class ReviewRepository:
    """Repository for reviews; keeps products.rating / review_count in sync"""

    @staticmethod
    def _map_row_to_review(row: dict) -> Review:
        return Review(
            id=row['id'],
            product_id=row['product_id'],
            user_id=row['user_id'],
            order_id=row.get('order_id'),
            rating=row['rating'],
            title=row.get('title'),
            comment=row.get('comment'),
            status=row.get('status') or 'approved',
            is_verified_purchase=row.get('is_verified_purchase', False),
            author_name=row.get('author_name'),
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    @staticmethod
    def _refresh_product_rating(cursor, product_id: int) -> None:
        cursor.execute("""
            UPDATE products
            SET rating = COALESCE((
                    SELECT ROUND(AVG(rating)::numeric, 2) FROM reviews
                    WHERE product_id = %s AND status = 'approved'
                ), 0),
                review_count = (
                    SELECT COUNT(*) FROM reviews
                    WHERE product_id = %s AND status = 'approved'
                )
            WHERE id = %s
        """, (product_id, product_id, product_id))

    def find_by_id(self, review_id: int) -> Optional[Review]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {REVIEW_COLUMNS}
                FROM reviews r
                LEFT JOIN users u ON u.id = r.user_id
                WHERE r.id = %s
            """, (review_id,))
            row = cursor.fetchone()
            return self._map_row_to_review(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_product(
        self,
        product_id: int,
        rating: Optional[int] = None,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Review], int]:
        """Approved reviews, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["r.product_id = %s", "r.status = 'approved'"]
            params = [product_id]

            if rating is not None:
                conditions.append("r.rating = %s")
                params.append(rating)

            where_clause = " AND ".join(conditions)

            cursor.execute(f"SELECT COUNT(*) as total FROM reviews r WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {REVIEW_COLUMNS}
                FROM reviews r
                LEFT JOIN users u ON u.id = r.user_id
                WHERE {where_clause}
                ORDER BY r.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            reviews = [self._map_row_to_review(row) for row in cursor.fetchall()]
            return reviews, total

        finally:
            cursor.close()
            conn.close()

    def get_rating_stats(self, product_id: int) -> dict:
        """
        Rating statistics for a product

        Returns:
            {'average_rating': 4.25, 'total_reviews': 8,
             'distribution': {1: 0, 2: 1, 3: 0, 4: 3, 5: 4}}
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT rating, COUNT(*) as count
                FROM reviews
                WHERE product_id = %s AND status = 'approved'
                GROUP BY rating
            """, (product_id,))
            rows = cursor.fetchall()

            distribution = {star: 0 for star in range(1, 6)}
            for row in rows:
                distribution[row['rating']] = row['count']

            total = sum(distribution.values())
            average = (
                round(sum(star * count for star, count in distribution.items()) / total, 2)
                if total else 0.0
            )

            return {
                'average_rating': average,
                'total_reviews': total,
                'distribution': distribution,
            }

        finally:
            cursor.close()
            conn.close()

    def exists_for_user(self, product_id: int, user_id: int) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT 1 FROM reviews WHERE product_id = %s AND user_id = %s",
                (product_id, user_id)
            )
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def create(
        self,
        product_id: int,
        user_id: int,
        rating: int,
        title: Optional[str],
        comment: Optional[str],
        order_id: Optional[int] = None
    ) -> Review:
        """
        Raises:
            ConflictError: user already reviewed the product
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO reviews (
                    product_id, user_id, order_id, rating, title, comment,
                    status, is_verified_purchase, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, 'approved', %s, NOW(), NOW())
                RETURNING id
            """, (product_id, user_id, order_id, rating, title, comment, order_id is not None))
            review_id = cursor.fetchone()['id']

            self._refresh_product_rating(cursor, product_id)
            conn.commit()

        except UniqueViolation:
            conn.rollback()
            raise ConflictError("You have already reviewed this product")
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(review_id)

    def update(self, review_id: int, product_id: int, fields: dict) -> Optional[Review]:
        if not fields:
            return self.find_by_id(review_id)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = [f"{column} = %s" for column in fields]
            update_fields.append("updated_at = NOW()")
            cursor.execute(f"""
                UPDATE reviews SET {', '.join(update_fields)}
                WHERE id = %s
            """, list(fields.values()) + [review_id])

            self._refresh_product_rating(cursor, product_id)
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(review_id)

    def delete(self, review_id: int, product_id: int) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM reviews WHERE id = %s", (review_id,))
            self._refresh_product_rating(cursor, product_id)
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
