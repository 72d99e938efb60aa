"""
Admin Repository - dashboard aggregates and audit trail

Author: TM3
Date: 2025-11-07
"""
from typing import List, Optional, Tuple

from psycopg2.extras import Json

from buysell.core.database import get_db_connection_dict


class AdminRepository:
    """Read-mostly queries behind the admin panel"""

    def get_dashboard_stats(self) -> dict:
        """
        Marketplace overview

        Returns:
            Dict with totals, revenue, orders_by_status and recent_orders
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    (SELECT COUNT(*) FROM users WHERE is_active) as total_users,
                    (SELECT COUNT(*) FROM products WHERE is_published AND is_available) as total_products,
                    (SELECT COUNT(*) FROM orders WHERE status <> 'cancelled') as total_orders,
                    (SELECT COUNT(*) FROM users
                     WHERE role = 'seller' AND seller_status = 'approved' AND is_active) as active_sellers,
                    (SELECT COUNT(*) FROM users
                     WHERE role = 'seller' AND seller_status = 'pending') as pending_sellers,
                    (SELECT COALESCE(SUM(total_amount), 0) FROM orders
                     WHERE status = 'delivered') as total_revenue
            """)
            totals = cursor.fetchone()

            cursor.execute("""
                SELECT status, COUNT(*) as count
                FROM orders
                GROUP BY status
                ORDER BY count DESC
            """)
            orders_by_status = {row['status']: row['count'] for row in cursor.fetchall()}

            cursor.execute("""
                SELECT o.id, o.order_number, o.status, o.payment_status,
                       o.total_amount, o.created_at, u.email as customer_email
                FROM orders o
                LEFT JOIN users u ON u.id = o.user_id
                ORDER BY o.created_at DESC
                LIMIT 10
            """)
            recent_orders = []
            for row in cursor.fetchall():
                order = dict(row)
                order['total_amount'] = float(order['total_amount'])
                recent_orders.append(order)

            return {
                'totals': {
                    'users': totals['total_users'],
                    'products': totals['total_products'],
                    'orders': totals['total_orders'],
                    'active_sellers': totals['active_sellers'],
                    'pending_sellers': totals['pending_sellers'],
                },
                'revenue': float(totals['total_revenue']),
                'orders_by_status': orders_by_status,
                'recent_orders': recent_orders,
            }

        finally:
            cursor.close()
            conn.close()

    def log_action(
        self,
        admin_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        details: Optional[dict] = None
    ) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO admin_audit_logs (admin_id, action, entity_type, entity_id, details, created_at)
                VALUES (%s, %s, %s, %s, %s, NOW())
            """, (admin_id, action, entity_type, entity_id, Json(details or {})))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def find_audit_logs(
        self,
        action: Optional[str] = None,
        admin_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[dict], int]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if action:
                conditions.append("l.action = %s")
                params.append(action)

            if admin_id is not None:
                conditions.append("l.admin_id = %s")
                params.append(admin_id)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"SELECT COUNT(*) as total FROM admin_audit_logs l WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT l.id, l.admin_id, u.email as admin_email, l.action,
                       l.entity_type, l.entity_id, l.details, l.created_at
                FROM admin_audit_logs l
                LEFT JOIN users u ON u.id = l.admin_id
                WHERE {where_clause}
                ORDER BY l.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            return [dict(row) for row in cursor.fetchall()], total

        finally:
            cursor.close()
            conn.close()
