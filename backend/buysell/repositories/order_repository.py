"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and order items.
Checkout and cancellation run in a single transaction each, so stock,
coupon usage and cart state never drift from the orders table.

Author: TM3
Date: 2025-11-05
"""
from typing import List, Optional, Tuple, Dict

from psycopg2.extras import Json

from buysell.core.constants import CANCELLABLE_STATUSES
from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import BadRequestError, ConflictError
from buysell.domain.order import Order, OrderItem

ORDER_COLUMNS = """
    o.id, o.order_number, o.user_id, o.status, o.payment_status,
    o.payment_method, o.shipping_method,
    o.subtotal, o.shipping_cost, o.tax_amount, o.discount_amount,
    o.total_amount, o.currency, o.items_count, o.coupon_id,
    o.shipping_address, o.billing_address,
    o.notes, o.admin_notes, o.tracking_number, o.cancellation_reason,
    o.paid_at, o.shipped_at, o.delivered_at, o.cancelled_at,
    o.status_updated_at, o.created_at, o.updated_at
"""

CUSTOMER_COLUMNS = """
    u.email as customer_email,
    TRIM(CONCAT(u.first_name, ' ', u.last_name)) as customer_name
"""

ITEM_COLUMNS = """
    id, order_id, product_id, seller_id, product_name, product_sku,
    product_image, quantity, unit_price, total_price
"""

ORDER_SORT_COLUMNS = {
    "created_at": "o.created_at",
    "total_amount": "o.total_amount",
}


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with items.
    """

    @staticmethod
    def _map_row_to_order(row: dict, items: Optional[List[OrderItem]] = None) -> Order:
        return Order(
            id=row['id'],
            order_number=row['order_number'],
            user_id=row['user_id'],
            status=row['status'],
            payment_status=row.get('payment_status') or 'pending',
            payment_method=row.get('payment_method'),
            shipping_method=row.get('shipping_method') or 'standard',
            subtotal=row['subtotal'],
            shipping_cost=row.get('shipping_cost') or 0,
            tax_amount=row.get('tax_amount') or 0,
            discount_amount=row.get('discount_amount') or 0,
            total_amount=row['total_amount'],
            currency=row.get('currency') or 'XOF',
            items_count=row.get('items_count') or 0,
            coupon_id=row.get('coupon_id'),
            shipping_address=row.get('shipping_address'),
            billing_address=row.get('billing_address'),
            notes=row.get('notes'),
            admin_notes=row.get('admin_notes'),
            tracking_number=row.get('tracking_number'),
            cancellation_reason=row.get('cancellation_reason'),
            paid_at=row.get('paid_at'),
            shipped_at=row.get('shipped_at'),
            delivered_at=row.get('delivered_at'),
            cancelled_at=row.get('cancelled_at'),
            status_updated_at=row.get('status_updated_at'),
            created_at=row['created_at'],
            updated_at=row.get('updated_at'),
            customer_email=row.get('customer_email'),
            customer_name=row.get('customer_name'),
            items=items or []
        )

    @staticmethod
    def _map_row_to_item(row: dict) -> OrderItem:
        return OrderItem(
            id=row['id'],
            order_id=row['order_id'],
            product_id=row.get('product_id'),
            seller_id=row.get('seller_id'),
            product_name=row['product_name'],
            product_sku=row.get('product_sku'),
            product_image=row.get('product_image'),
            quantity=row['quantity'],
            unit_price=row['unit_price'],
            total_price=row['total_price']
        )

    def _load_items(self, cursor, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        """Items for several orders in one query, grouped by order_id"""
        items_by_order: Dict[int, List[OrderItem]] = {order_id: [] for order_id in order_ids}
        if not order_ids:
            return items_by_order

        cursor.execute(f"""
            SELECT {ITEM_COLUMNS}
            FROM order_items
            WHERE order_id = ANY(%s)
            ORDER BY id
        """, (list(order_ids),))

        for row in cursor.fetchall():
            items_by_order.setdefault(row['order_id'], []).append(self._map_row_to_item(row))
        return items_by_order

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_with_items(
        self,
        order_data: dict,
        items: List[dict],
        coupon_id: Optional[int] = None,
        clear_cart: bool = False
    ) -> Tuple[Order, List[dict]]:
        """
        Create an order, its items, reserve stock and consume the cart

        Args:
            order_data: Column values for the orders row (user_id, totals, addresses...)
            items: One dict per line: product_id, seller_id, product_name,
                   product_sku, product_image, quantity, unit_price, total_price
            coupon_id: Coupon whose used_count is incremented
            clear_cart: Deactivate the user's cart lines

        Returns:
            Tuple of (created order, products that fell to their low-stock level)

        Raises:
            ConflictError: stock changed since validation and no longer covers a line
            BadRequestError: coupon usage limit reached meanwhile
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            fields = dict(order_data)
            for key in ('shipping_address', 'billing_address'):
                if fields.get(key) is not None:
                    fields[key] = Json(fields[key])
            columns = list(fields.keys())
            placeholders = ", ".join(["%s"] * len(columns))

            cursor.execute(f"""
                INSERT INTO orders ({', '.join(columns)}, created_at, updated_at)
                VALUES ({placeholders}, NOW(), NOW())
                RETURNING id
            """, list(fields.values()))
            order_id = cursor.fetchone()['id']

            low_stock = []
            for item in items:
                cursor.execute("""
                    INSERT INTO order_items (
                        order_id, product_id, seller_id, product_name, product_sku,
                        product_image, quantity, unit_price, total_price, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
                """, (
                    order_id, item['product_id'], item.get('seller_id'), item['product_name'],
                    item.get('product_sku'), item.get('product_image'), item['quantity'],
                    item['unit_price'], item['total_price']
                ))

                # Guarded decrement: fails instead of going negative
                cursor.execute("""
                    UPDATE products
                    SET quantity = CASE WHEN track_quantity THEN quantity - %s ELSE quantity END,
                        updated_at = NOW()
                    WHERE id = %s AND (NOT track_quantity OR quantity >= %s)
                    RETURNING id, name, seller_id, quantity, track_quantity, low_stock_threshold
                """, (item['quantity'], item['product_id'], item['quantity']))
                product = cursor.fetchone()
                if not product:
                    raise ConflictError(f"Insufficient stock for \"{item['product_name']}\"")
                if product['track_quantity'] and product['quantity'] <= product['low_stock_threshold']:
                    low_stock.append(dict(product))

            if coupon_id is not None:
                cursor.execute("""
                    UPDATE coupons SET used_count = used_count + 1
                    WHERE id = %s AND (usage_limit IS NULL OR used_count < usage_limit)
                    RETURNING id
                """, (coupon_id,))
                if not cursor.fetchone():
                    raise BadRequestError("Coupon usage limit reached")

            if clear_cart:
                cursor.execute("""
                    UPDATE cart_items SET is_active = FALSE, updated_at = NOW()
                    WHERE user_id = %s AND is_active
                """, (order_data['user_id'],))

            cursor.execute(f"SELECT {ORDER_COLUMNS} FROM orders o WHERE o.id = %s", (order_id,))
            row = cursor.fetchone()
            order_items = self._load_items(cursor, [order_id])[order_id]

            conn.commit()
            return self._map_row_to_order(row, order_items), low_stock

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, order_id: int, include_items: bool = True) -> Optional[Order]:
        """
        Find order by ID

        Returns:
            Order (with items) or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}, {CUSTOMER_COLUMNS}
                FROM orders o
                LEFT JOIN users u ON u.id = o.user_id
                WHERE o.id = %s
            """, (order_id,))
            row = cursor.fetchone()
            if not row:
                return None

            items = self._load_items(cursor, [order_id])[order_id] if include_items else []
            return self._map_row_to_order(row, items)

        finally:
            cursor.close()
            conn.close()

    def find_by_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        A customer's orders

        Returns:
            Tuple of (list of orders with items, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["o.user_id = %s"]
            params = [user_id]

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            where_clause = " AND ".join(conditions)
            order_column = ORDER_SORT_COLUMNS.get(sort_by, ORDER_SORT_COLUMNS['created_at'])
            direction = "ASC" if sort_order.lower() == "asc" else "DESC"

            cursor.execute(f"SELECT COUNT(*) as total FROM orders o WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE {where_clause}
                ORDER BY {order_column} {direction}
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

            items = self._load_items(cursor, [row['id'] for row in rows])
            orders = [self._map_row_to_order(row, items.get(row['id'])) for row in rows]
            return orders, total

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters (admin)

        Args:
            search: Order number or customer email
            date_from / date_to: Inclusive bounds on created_at (YYYY-MM-DD)

        Returns:
            Tuple of (list of orders without items, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            if payment_status:
                conditions.append("o.payment_status = %s")
                params.append(payment_status)

            if search:
                conditions.append("(o.order_number ILIKE %s OR u.email ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term])

            if date_from:
                conditions.append("o.created_at >= %s")
                params.append(date_from)

            if date_to:
                conditions.append("o.created_at < (%s::date + INTERVAL '1 day')")
                params.append(date_to)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders o
                LEFT JOIN users u ON u.id = o.user_id
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}, {CUSTOMER_COLUMNS}
                FROM orders o
                LEFT JOIN users u ON u.id = o.user_id
                WHERE {where_clause}
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            orders = [self._map_row_to_order(row) for row in cursor.fetchall()]
            return orders, total

        finally:
            cursor.close()
            conn.close()

    def find_by_seller(
        self,
        seller_id: int,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Orders containing at least one of the seller's products

        Only the seller's own lines are attached as items.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["EXISTS (SELECT 1 FROM order_items oi WHERE oi.order_id = o.id AND oi.seller_id = %s)"]
            params = [seller_id]

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            where_clause = " AND ".join(conditions)

            cursor.execute(f"SELECT COUNT(*) as total FROM orders o WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE {where_clause}
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

            items = self._load_items(cursor, [row['id'] for row in rows])
            orders = []
            for row in rows:
                own_items = [item for item in items.get(row['id'], []) if item.seller_id == seller_id]
                orders.append(self._map_row_to_order(row, own_items))
            return orders, total

        finally:
            cursor.close()
            conn.close()

    def find_delivered_purchase(self, user_id: int, product_id: int) -> Optional[int]:
        """ID of a delivered order of user_id containing product_id, if any"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT o.id
                FROM orders o
                JOIN order_items oi ON oi.order_id = o.id
                WHERE o.user_id = %s AND oi.product_id = %s AND o.status = 'delivered'
                ORDER BY o.delivered_at DESC NULLS LAST
                LIMIT 1
            """, (user_id, product_id))
            row = cursor.fetchone()
            return row['id'] if row else None

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    def cancel(self, order_id: int, reason: Optional[str] = None) -> Optional[Order]:
        """
        Cancel an order and put its tracked stock back

        The status guard is repeated in SQL so two concurrent cancels
        cannot both restore stock.

        Returns:
            Cancelled order, or None if it was no longer cancellable
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET status = 'cancelled',
                    cancelled_at = NOW(),
                    cancellation_reason = %s,
                    status_updated_at = NOW(),
                    updated_at = NOW()
                WHERE id = %s AND status = ANY(%s)
                RETURNING id
            """, (reason, order_id, list(CANCELLABLE_STATUSES)))

            if not cursor.fetchone():
                conn.rollback()
                return None

            cursor.execute("""
                UPDATE products p
                SET quantity = p.quantity + s.qty, updated_at = NOW()
                FROM (
                    SELECT product_id, SUM(quantity) as qty
                    FROM order_items
                    WHERE order_id = %s AND product_id IS NOT NULL
                    GROUP BY product_id
                ) s
                WHERE p.id = s.product_id AND p.track_quantity
            """, (order_id,))

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(order_id)

    def update_status(
        self,
        order_id: int,
        status: str,
        admin_notes: Optional[str] = None,
        tracking_number: Optional[str] = None
    ) -> Optional[Order]:
        """Set any status; shipped/delivered/cancelled timestamps are filled once"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = [
                "status = %s",
                "status_updated_at = NOW()",
                "updated_at = NOW()",
            ]
            values = [status]

            if admin_notes is not None:
                update_fields.append("admin_notes = %s")
                values.append(admin_notes)

            if tracking_number is not None:
                update_fields.append("tracking_number = %s")
                values.append(tracking_number)

            if status == 'shipped':
                update_fields.append("shipped_at = COALESCE(shipped_at, NOW())")
            elif status == 'delivered':
                update_fields.append("delivered_at = COALESCE(delivered_at, NOW())")
            elif status == 'cancelled':
                update_fields.append("cancelled_at = COALESCE(cancelled_at, NOW())")

            values.append(order_id)
            cursor.execute(f"""
                UPDATE orders
                SET {', '.join(update_fields)}
                WHERE id = %s
                RETURNING id
            """, values)
            row = cursor.fetchone()
            conn.commit()

        finally:
            cursor.close()
            conn.close()

        return self.find_by_id(order_id) if row else None

    def update_payment(
        self,
        order_id: int,
        payment_status: Optional[str] = None,
        payment_method: Optional[str] = None,
        status: Optional[str] = None,
        mark_paid: bool = False
    ) -> None:
        """
        Payment-side order updates

        mark_paid confirms a pending order and stamps paid_at.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = ["updated_at = NOW()"]
            values = []

            if payment_status is not None:
                update_fields.append("payment_status = %s")
                values.append(payment_status)

            if payment_method is not None:
                update_fields.append("payment_method = %s")
                values.append(payment_method)

            if mark_paid:
                update_fields.append("paid_at = COALESCE(paid_at, NOW())")
                update_fields.append(
                    "status = CASE WHEN status = 'pending' THEN 'confirmed' ELSE status END"
                )
                update_fields.append("status_updated_at = NOW()")
            elif status is not None:
                update_fields.append("status = %s")
                update_fields.append("status_updated_at = NOW()")
                values.append(status)

            values.append(order_id)
            cursor.execute(f"""
                UPDATE orders
                SET {', '.join(update_fields)}
                WHERE id = %s
            """, values)
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def sync_refund_status(self, payment_id: int) -> Optional[str]:
        """
        Mirror a payment's refund state onto its order

        Read from the committed payment row, so whichever refund finishes
        last leaves the order matching the payment's final total.

        Returns:
            The order payment_status written, or None if nothing matched
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders o
                SET payment_status = CASE WHEN p.status = 'fully_refunded'
                                          THEN 'refunded' ELSE 'partially_refunded' END,
                    status = CASE WHEN p.status = 'fully_refunded' THEN 'refunded' ELSE o.status END,
                    status_updated_at = CASE WHEN p.status = 'fully_refunded'
                                             THEN NOW() ELSE o.status_updated_at END,
                    updated_at = NOW()
                FROM payments p
                WHERE p.id = %s
                  AND o.id = p.order_id
                  AND p.status IN ('partially_refunded', 'fully_refunded')
                RETURNING o.payment_status
            """, (payment_id,))

            row = cursor.fetchone()
            conn.commit()
            return row['payment_status'] if row else None

        finally:
            cursor.close()
            conn.close()
