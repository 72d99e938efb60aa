"""
Analytics Repository - sales aggregates over a date window

Platform figures are read from orders; seller figures from the seller's
own order_items, so a multi-vendor order only contributes each seller's
lines. Sales are orders in SALES_ORDER_STATUSES. Order counts include
every order created in the window.

Author: TM3
Date: 2025-11-10
"""
from datetime import datetime
from typing import List, Optional

from buysell.core.constants import SALES_ORDER_STATUSES, TOP_PRODUCTS_LIMIT
from buysell.core.database import get_db_connection_dict


class AnalyticsRepository:
    """Aggregate queries behind the admin and seller analytics pages"""

    def get_revenue(self, start: datetime, end: datetime, seller_id: Optional[int] = None) -> dict:
        """
        Returns:
            {"total": float, "orders": int}
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if seller_id is None:
                cursor.execute("""
                    SELECT
                        COALESCE(SUM(total_amount), 0) as total,
                        COUNT(*) as orders
                    FROM orders
                    WHERE created_at >= %s AND created_at < %s
                      AND status = ANY(%s)
                """, (start, end, list(SALES_ORDER_STATUSES)))
            else:
                cursor.execute("""
                    SELECT
                        COALESCE(SUM(oi.total_price), 0) as total,
                        COUNT(DISTINCT o.id) as orders
                    FROM order_items oi
                    JOIN orders o ON o.id = oi.order_id
                    WHERE oi.seller_id = %s
                      AND o.created_at >= %s AND o.created_at < %s
                      AND o.status = ANY(%s)
                """, (seller_id, start, end, list(SALES_ORDER_STATUSES)))

            row = cursor.fetchone()
            return {'total': float(row['total']), 'orders': int(row['orders'])}

        finally:
            cursor.close()
            conn.close()

    def get_order_counts(self, start: datetime, end: datetime, seller_id: Optional[int] = None) -> dict:
        """
        Returns:
            {"total", "completed", "cancelled", "items"} for orders created in the window
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if seller_id is None:
                cursor.execute("""
                    SELECT
                        COUNT(*) as total,
                        COUNT(*) FILTER (WHERE status = 'delivered') as completed,
                        COUNT(*) FILTER (WHERE status = 'cancelled') as cancelled,
                        COALESCE(SUM(items_count), 0) as items
                    FROM orders
                    WHERE created_at >= %s AND created_at < %s
                """, (start, end))
            else:
                cursor.execute("""
                    SELECT
                        COUNT(DISTINCT o.id) as total,
                        COUNT(DISTINCT o.id) FILTER (WHERE o.status = 'delivered') as completed,
                        COUNT(DISTINCT o.id) FILTER (WHERE o.status = 'cancelled') as cancelled,
                        COALESCE(SUM(oi.quantity), 0) as items
                    FROM order_items oi
                    JOIN orders o ON o.id = oi.order_id
                    WHERE oi.seller_id = %s
                      AND o.created_at >= %s AND o.created_at < %s
                """, (seller_id, start, end))

            row = cursor.fetchone()
            return {key: int(row[key]) for key in ('total', 'completed', 'cancelled', 'items')}

        finally:
            cursor.close()
            conn.close()

    def get_user_counts(self, start: datetime, end: datetime) -> dict:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    COUNT(*) FILTER (WHERE created_at >= %s AND created_at < %s) as new_users,
                    COUNT(*) FILTER (WHERE last_login_at >= %s AND last_login_at < %s) as active_users,
                    COUNT(*) FILTER (WHERE role = 'seller' AND created_at >= %s AND created_at < %s) as new_sellers
                FROM users
            """, (start, end, start, end, start, end))

            row = cursor.fetchone()
            return {key: int(row[key]) for key in ('new_users', 'active_users', 'new_sellers')}

        finally:
            cursor.close()
            conn.close()

    def get_top_products(
        self,
        start: datetime,
        end: datetime,
        seller_id: Optional[int] = None,
        limit: int = TOP_PRODUCTS_LIMIT
    ) -> List[dict]:
        """Best sellers by units, ties broken by revenue"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            params = [start, end, list(SALES_ORDER_STATUSES)]
            seller_filter = ""
            if seller_id is not None:
                seller_filter = "AND oi.seller_id = %s"
                params.append(seller_id)
            params.append(limit)

            cursor.execute(f"""
                SELECT
                    oi.product_id,
                    MAX(oi.product_name) as name,
                    p.slug,
                    SUM(oi.quantity) as units_sold,
                    SUM(oi.total_price) as revenue,
                    COUNT(DISTINCT oi.order_id) as orders
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                LEFT JOIN products p ON p.id = oi.product_id
                WHERE o.created_at >= %s AND o.created_at < %s
                  AND o.status = ANY(%s)
                  {seller_filter}
                GROUP BY oi.product_id, p.slug
                ORDER BY units_sold DESC, revenue DESC
                LIMIT %s
            """, params)

            return [
                {
                    'product_id': row['product_id'],
                    'name': row['name'],
                    'slug': row['slug'],
                    'units_sold': int(row['units_sold']),
                    'revenue': float(row['revenue']),
                    'orders': int(row['orders']),
                }
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def get_sales_by_category(self, start: datetime, end: datetime) -> List[dict]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    c.id as category_id,
                    COALESCE(c.name, 'Uncategorized') as category,
                    SUM(oi.quantity) as units_sold,
                    SUM(oi.total_price) as revenue
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                LEFT JOIN products p ON p.id = oi.product_id
                LEFT JOIN categories c ON c.id = p.category_id
                WHERE o.created_at >= %s AND o.created_at < %s
                  AND o.status = ANY(%s)
                GROUP BY c.id, c.name
                ORDER BY revenue DESC
            """, (start, end, list(SALES_ORDER_STATUSES)))

            return [
                {
                    'category_id': row['category_id'],
                    'category': row['category'],
                    'units_sold': int(row['units_sold']),
                    'revenue': float(row['revenue']),
                }
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def get_daily_sales(self, start: datetime, end: datetime, seller_id: Optional[int] = None) -> List[dict]:
        """Revenue and order count per day that had sales, oldest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if seller_id is None:
                cursor.execute("""
                    SELECT
                        DATE_TRUNC('day', created_at)::date as day,
                        COALESCE(SUM(total_amount), 0) as revenue,
                        COUNT(*) as orders
                    FROM orders
                    WHERE created_at >= %s AND created_at < %s
                      AND status = ANY(%s)
                    GROUP BY DATE_TRUNC('day', created_at)::date
                    ORDER BY day
                """, (start, end, list(SALES_ORDER_STATUSES)))
            else:
                cursor.execute("""
                    SELECT
                        DATE_TRUNC('day', o.created_at)::date as day,
                        COALESCE(SUM(oi.total_price), 0) as revenue,
                        COUNT(DISTINCT o.id) as orders
                    FROM order_items oi
                    JOIN orders o ON o.id = oi.order_id
                    WHERE oi.seller_id = %s
                      AND o.created_at >= %s AND o.created_at < %s
                      AND o.status = ANY(%s)
                    GROUP BY DATE_TRUNC('day', o.created_at)::date
                    ORDER BY day
                """, (seller_id, start, end, list(SALES_ORDER_STATUSES)))

            return [
                {'day': row['day'], 'revenue': float(row['revenue']), 'orders': int(row['orders'])}
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()
