"""
Product Repository - Data Access Layer for Products

Handles all database queries for products and returns Product domain models.

Author: TM3
Date: 2025-11-04
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from psycopg2.errors import UniqueViolation
from psycopg2.extras import Json

from buysell.core.constants import PRODUCT_SORT_FIELDS
from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import ConflictError
from buysell.domain.product import Product

PRODUCT_COLUMNS = """
    p.id, p.seller_id, p.category_id, p.name, p.slug, p.sku,
    p.description, p.short_description, p.images, p.tags, p.weight,
    p.price, p.compare_at_price, p.currency,
    p.quantity, p.track_quantity, p.low_stock_threshold,
    p.is_published, p.is_available, p.view_count, p.rating, p.review_count,
    p.created_at, p.updated_at,
    c.name as category_name,
    COALESCE(u.store_name, u.first_name) as seller_name
"""

PRODUCT_JOINS = """
    FROM products p
    LEFT JOIN categories c ON c.id = p.category_id
    LEFT JOIN users u ON u.id = p.seller_id
"""

# JSONB columns need wrapping on write
JSON_COLUMNS = ('images', 'tags')


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        return Product(
            id=row['id'],
            seller_id=row.get('seller_id'),
            category_id=row.get('category_id'),
            name=row['name'],
            slug=row['slug'],
            sku=row.get('sku'),
            description=row.get('description'),
            short_description=row.get('short_description'),
            images=row.get('images') or [],
            tags=row.get('tags') or [],
            weight=row.get('weight'),
            price=row['price'],
            compare_at_price=row.get('compare_at_price'),
            currency=row.get('currency') or 'XOF',
            quantity=row.get('quantity') or 0,
            track_quantity=row.get('track_quantity', True),
            low_stock_threshold=row.get('low_stock_threshold') or 0,
            is_published=row.get('is_published', False),
            is_available=row.get('is_available', True),
            view_count=row.get('view_count') or 0,
            rating=row.get('rating') or Decimal('0'),
            review_count=row.get('review_count') or 0,
            category_name=row.get('category_name'),
            seller_name=row.get('seller_name'),
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    @staticmethod
    def _db_values(fields: dict) -> list:
        return [Json(value) if key in JSON_COLUMNS else value for key, value in fields.items()]

    def find_by_id(self, product_id: int) -> Optional[Product]:
        """
        Find product by ID (any visibility)

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {PRODUCT_COLUMNS} {PRODUCT_JOINS} WHERE p.id = %s", (product_id,))
            row = cursor.fetchone()
            return self._map_row_to_product(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_slug(self, slug: str) -> Optional[Product]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {PRODUCT_COLUMNS} {PRODUCT_JOINS} WHERE p.slug = %s", (slug,))
            row = cursor.fetchone()
            return self._map_row_to_product(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, product_ids: List[int]) -> List[Product]:
        """Bulk lookup used at checkout"""
        if not product_ids:
            return []

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {PRODUCT_COLUMNS} {PRODUCT_JOINS} WHERE p.id = ANY(%s)",
                (list(product_ids),)
            )
            return [self._map_row_to_product(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        seller_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        in_stock: Optional[bool] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Public catalog listing: only published, available products

        Args:
            search: Matches name, description or tags
            category_id: Filter by category
            seller_id: Filter by seller
            min_price / max_price: Price range (inclusive)
            in_stock: True keeps products that can be bought now
            sort_by: created_at, price, name or rating
            sort_order: asc or desc

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["p.is_published", "p.is_available"]
            params = []

            if search:
                conditions.append("(p.name ILIKE %s OR p.description ILIKE %s OR p.tags::text ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term, search_term])

            if category_id is not None:
                conditions.append("p.category_id = %s")
                params.append(category_id)

            if seller_id is not None:
                conditions.append("p.seller_id = %s")
                params.append(seller_id)

            if min_price is not None:
                conditions.append("p.price >= %s")
                params.append(min_price)

            if max_price is not None:
                conditions.append("p.price <= %s")
                params.append(max_price)

            if in_stock:
                conditions.append("(NOT p.track_quantity OR p.quantity > 0)")

            where_clause = " AND ".join(conditions)
            order_column = PRODUCT_SORT_FIELDS.get(sort_by, PRODUCT_SORT_FIELDS['created_at'])
            direction = "ASC" if sort_order.lower() == "asc" else "DESC"

            cursor.execute(f"SELECT COUNT(*) as total FROM products p WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                {PRODUCT_JOINS}
                WHERE {where_clause}
                ORDER BY {order_column} {direction}, p.id {direction}
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            products = [self._map_row_to_product(row) for row in cursor.fetchall()]
            return products, total

        finally:
            cursor.close()
            conn.close()

    def find_by_seller(
        self,
        seller_id: int,
        status: str = "all",
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        A seller's own listings, drafts included

        Args:
            status: all, published, draft, out_of_stock
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["p.seller_id = %s", "p.is_available"]
            params = [seller_id]

            if status == "published":
                conditions.append("p.is_published")
            elif status == "draft":
                conditions.append("NOT p.is_published")
            elif status == "out_of_stock":
                conditions.append("p.track_quantity AND p.quantity <= 0")

            where_clause = " AND ".join(conditions)

            cursor.execute(f"SELECT COUNT(*) as total FROM products p WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                {PRODUCT_JOINS}
                WHERE {where_clause}
                ORDER BY p.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            products = [self._map_row_to_product(row) for row in cursor.fetchall()]
            return products, total

        finally:
            cursor.close()
            conn.close()

    def create(self, seller_id: int, slug: str, data: dict) -> Product:
        """
        Insert a product

        Args:
            seller_id: Owner
            slug: Pre-computed unique slug
            data: Validated ProductCreate fields

        Raises:
            ConflictError: slug or SKU already in use
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            fields = {'seller_id': seller_id, 'slug': slug, **data}
            columns = list(fields.keys())
            placeholders = ", ".join(["%s"] * len(columns))

            cursor.execute(f"""
                INSERT INTO products ({', '.join(columns)}, is_available, created_at, updated_at)
                VALUES ({placeholders}, TRUE, NOW(), NOW())
                RETURNING id
            """, self._db_values(fields))

            product_id = cursor.fetchone()['id']
            conn.commit()

        except UniqueViolation:
            conn.rollback()
            raise ConflictError("A product with this slug or SKU already exists")
        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(product_id)

    def update(self, product_id: int, fields: dict) -> Optional[Product]:
        """
        Update whitelisted columns

        Raises:
            ConflictError: new slug or SKU already in use
        """
        if not fields:
            return self.find_by_id(product_id)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = [f"{column} = %s" for column in fields]
            update_fields.append("updated_at = NOW()")

            cursor.execute(f"""
                UPDATE products
                SET {', '.join(update_fields)}
                WHERE id = %s
                RETURNING id
            """, self._db_values(fields) + [product_id])

            row = cursor.fetchone()
            conn.commit()

        except UniqueViolation:
            conn.rollback()
            raise ConflictError("A product with this slug or SKU already exists")
        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(product_id) if row else None

    def soft_delete(self, product_id: int) -> bool:
        """Withdraw a listing: unpublished and unavailable"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE products
                SET is_published = FALSE, is_available = FALSE, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, (product_id,))
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if exclude_id is not None:
                cursor.execute("SELECT 1 FROM products WHERE slug = %s AND id <> %s", (slug, exclude_id))
            else:
                cursor.execute("SELECT 1 FROM products WHERE slug = %s", (slug,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def increment_view_count(self, product_id: int) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "UPDATE products SET view_count = view_count + 1 WHERE id = %s",
                (product_id,)
            )
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def append_image(self, product_id: int, image_url: str) -> Optional[Product]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE products
                SET images = COALESCE(images, '[]'::jsonb) || %s::jsonb, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, (Json([image_url]), product_id))
            row = cursor.fetchone()
            conn.commit()

        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(product_id) if row else None
