"""
Category Repository - Data Access Layer for categories

Author: TM3
Date: 2025-11-04
"""
from typing import List, Optional

from psycopg2.errors import UniqueViolation

from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import ConflictError
from buysell.domain.category import Category

CATEGORY_COLUMNS = """
    c.id, c.name, c.slug, c.description, c.image_url, c.parent_id,
    c.sort_order, c.is_active, c.created_at, c.updated_at
"""

# Published, available products per category
PRODUCT_COUNT_SUBQUERY = """
    (SELECT COUNT(*) FROM products p
     WHERE p.category_id = c.id AND p.is_published AND p.is_available) as product_count
"""


class CategoryRepository:
    """Repository for Category data access"""

    @staticmethod
    def _map_row_to_category(row: dict) -> Category:
        return Category(
            id=row['id'],
            name=row['name'],
            slug=row['slug'],
            description=row.get('description'),
            image_url=row.get('image_url'),
            parent_id=row.get('parent_id'),
            sort_order=row.get('sort_order') or 0,
            is_active=row['is_active'],
            product_count=row.get('product_count'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, category_id: int, active_only: bool = True) -> Optional[Category]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = f"SELECT {CATEGORY_COLUMNS}, {PRODUCT_COUNT_SUBQUERY} FROM categories c WHERE c.id = %s"
            if active_only:
                query += " AND c.is_active"
            cursor.execute(query, (category_id,))
            row = cursor.fetchone()
            return self._map_row_to_category(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_slug(self, slug: str) -> Optional[Category]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {CATEGORY_COLUMNS}, {PRODUCT_COUNT_SUBQUERY}
                FROM categories c
                WHERE c.slug = %s AND c.is_active
            """, (slug,))
            row = cursor.fetchone()
            return self._map_row_to_category(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(self, parent_id: Optional[int] = None, roots_only: bool = True) -> List[Category]:
        """
        Active categories ordered by sort_order, name

        Args:
            parent_id: Only children of this category
            roots_only: When parent_id is None, only top-level categories
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["c.is_active"]
            params = []

            if parent_id is not None:
                conditions.append("c.parent_id = %s")
                params.append(parent_id)
            elif roots_only:
                conditions.append("c.parent_id IS NULL")

            cursor.execute(f"""
                SELECT {CATEGORY_COLUMNS}, {PRODUCT_COUNT_SUBQUERY}
                FROM categories c
                WHERE {' AND '.join(conditions)}
                ORDER BY c.sort_order, c.name
            """, params)

            return [self._map_row_to_category(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def create(self, name: str, slug: str, description: Optional[str] = None,
               image_url: Optional[str] = None, parent_id: Optional[int] = None,
               sort_order: int = 0) -> Category:
        """
        Raises:
            ConflictError: slug already taken
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO categories (name, slug, description, image_url, parent_id,
                                        sort_order, is_active, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, TRUE, NOW(), NOW())
                RETURNING id, name, slug, description, image_url, parent_id,
                          sort_order, is_active, created_at, updated_at
            """, (name, slug, description, image_url, parent_id, sort_order))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_category(row)

        except UniqueViolation:
            conn.rollback()
            raise ConflictError(f"A category with slug '{slug}' already exists")
        finally:
            cursor.close()
            conn.close()

    def update(self, category_id: int, fields: dict) -> Optional[Category]:
        if not fields:
            return self.find_by_id(category_id, active_only=False)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = [f"{column} = %s" for column in fields]
            update_fields.append("updated_at = NOW()")

            cursor.execute(f"""
                UPDATE categories
                SET {', '.join(update_fields)}
                WHERE id = %s
                RETURNING id, name, slug, description, image_url, parent_id,
                          sort_order, is_active, created_at, updated_at
            """, list(fields.values()) + [category_id])

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_category(row) if row else None

        except UniqueViolation:
            conn.rollback()
            raise ConflictError("A category with this slug already exists")
        finally:
            cursor.close()
            conn.close()

    def count_products(self, category_id: int) -> int:
        """Every product referencing the category, published or not"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT COUNT(*) as total FROM products WHERE category_id = %s",
                (category_id,)
            )
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def count_subcategories(self, category_id: int) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT COUNT(*) as total FROM categories WHERE parent_id = %s AND is_active",
                (category_id,)
            )
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def soft_delete(self, category_id: int) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE categories SET is_active = FALSE, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, (category_id,))
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()
