"""
Payment Repository - payments, refunds and webhook log

Author: TM3
Date: 2025-11-06
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from psycopg2.extras import Json

from buysell.core.constants import IN_FLIGHT_PAYMENT_STATUSES, REFUNDABLE_PAYMENT_STATUSES
from buysell.core.database import get_db_connection_dict
from buysell.core.exceptions import BadRequestError
from buysell.domain.payment import Payment, PaymentRefund

PAYMENT_COLUMNS = """
    id, order_id, user_id, provider, amount, currency, status,
    provider_reference, provider_response, phone_number, payment_url,
    next_action, failure_message, total_refunded, paid_at,
    created_at, updated_at
"""

REFUND_COLUMNS = """
    id, payment_id, amount, reason, provider_reference, status,
    created_by, created_at
"""

# Columns update() accepts
PAYMENT_UPDATABLE = (
    'status', 'provider_reference', 'provider_response', 'payment_url',
    'next_action', 'failure_message', 'total_refunded',
)


class PaymentRepository:
    """Repository for payment attempts"""

    @staticmethod
    def _map_row_to_payment(row: dict) -> Payment:
        return Payment(
            id=row['id'],
            order_id=row['order_id'],
            user_id=row['user_id'],
            provider=row['provider'],
            amount=row['amount'],
            currency=row.get('currency') or 'XOF',
            status=row['status'],
            provider_reference=row.get('provider_reference'),
            provider_response=row.get('provider_response'),
            phone_number=row.get('phone_number'),
            payment_url=row.get('payment_url'),
            next_action=row.get('next_action'),
            failure_message=row.get('failure_message'),
            total_refunded=row.get('total_refunded') or Decimal('0'),
            paid_at=row.get('paid_at'),
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    def create(
        self,
        order_id: int,
        user_id: int,
        provider: str,
        amount: Decimal,
        currency: str,
        phone_number: Optional[str] = None
    ) -> Payment:
        """New attempt in status 'initiated'"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO payments (
                    order_id, user_id, provider, amount, currency, status,
                    phone_number, total_refunded, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, 'initiated', %s, 0, NOW(), NOW())
                RETURNING {PAYMENT_COLUMNS}
            """, (order_id, user_id, provider, amount, currency, phone_number))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_payment(row)

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, payment_id: int) -> Optional[Payment]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE id = %s", (payment_id,))
            row = cursor.fetchone()
            return self._map_row_to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_reference(self, provider_reference: str, provider: Optional[str] = None) -> Optional[Payment]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if provider:
                cursor.execute(
                    f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE provider_reference = %s AND provider = %s",
                    (provider_reference, provider)
                )
            else:
                cursor.execute(
                    f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE provider_reference = %s",
                    (provider_reference,)
                )
            row = cursor.fetchone()
            return self._map_row_to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_order(self, order_id: int) -> List[Payment]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PAYMENT_COLUMNS}
                FROM payments
                WHERE order_id = %s
                ORDER BY created_at DESC
            """, (order_id,))
            return [self._map_row_to_payment(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_in_flight(self, order_id: int, provider: str) -> Optional[Payment]:
        """Most recent attempt for the same order and provider that is still open"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PAYMENT_COLUMNS}
                FROM payments
                WHERE order_id = %s AND provider = %s AND status = ANY(%s)
                ORDER BY created_at DESC
                LIMIT 1
            """, (order_id, provider, list(IN_FLIGHT_PAYMENT_STATUSES)))
            row = cursor.fetchone()
            return self._map_row_to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def update(self, payment_id: int, mark_paid: bool = False, **fields) -> Optional[Payment]:
        """
        Update attempt fields (see PAYMENT_UPDATABLE)

        mark_paid stamps paid_at the first time only.
        """
        unknown = set(fields) - set(PAYMENT_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update payment columns: {', '.join(sorted(unknown))}")

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            update_fields = ["updated_at = NOW()"]
            values = []
            for column, value in fields.items():
                update_fields.append(f"{column} = %s")
                values.append(Json(value) if column == 'provider_response' and value is not None else value)

            if mark_paid:
                update_fields.append("paid_at = COALESCE(paid_at, NOW())")

            values.append(payment_id)
            cursor.execute(f"""
                UPDATE payments
                SET {', '.join(update_fields)}
                WHERE id = %s
                RETURNING {PAYMENT_COLUMNS}
            """, values)

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def reserve_refund(
        self,
        payment_id: int,
        amount: Decimal,
        reason: Optional[str] = None,
        created_by: Optional[int] = None
    ) -> Tuple[PaymentRefund, str]:
        """
        Claim part of the refundable balance before the provider is called

        total_refunded and the resulting status are computed in one guarded
        UPDATE, so concurrent refunds serialize on the payment row and the
        last one to reach the full amount sees 'fully_refunded'. The refund
        row starts as 'pending' until complete_refund or release_refund.

        Returns:
            (pending refund, new payment status)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE payments
                SET total_refunded = total_refunded + %s,
                    status = CASE WHEN total_refunded + %s >= amount
                                  THEN 'fully_refunded' ELSE 'partially_refunded' END,
                    updated_at = NOW()
                WHERE id = %s
                  AND status = ANY(%s)
                  AND total_refunded + %s <= amount
                RETURNING status
            """, (amount, amount, payment_id, list(REFUNDABLE_PAYMENT_STATUSES), amount))

            row = cursor.fetchone()
            if not row:
                raise BadRequestError("Refund exceeds the remaining refundable amount")
            new_status = row['status']

            cursor.execute(f"""
                INSERT INTO payment_refunds (
                    payment_id, amount, reason, status, created_by, created_at
                )
                VALUES (%s, %s, %s, 'pending', %s, NOW())
                RETURNING {REFUND_COLUMNS}
            """, (payment_id, amount, reason, created_by))

            refund = PaymentRefund(**cursor.fetchone())
            conn.commit()
            return refund, new_status

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def complete_refund(self, refund_id: int, provider_reference: Optional[str] = None) -> PaymentRefund:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE payment_refunds
                SET status = 'succeeded', provider_reference = %s
                WHERE id = %s
                RETURNING {REFUND_COLUMNS}
            """, (provider_reference, refund_id))

            row = cursor.fetchone()
            conn.commit()
            return PaymentRefund(**row)

        finally:
            cursor.close()
            conn.close()

    def release_refund(self, refund_id: int, payment_id: int, amount: Decimal) -> None:
        """
        Give a reserved amount back after the provider refused the refund

        The payment drops back to 'succeeded' once nothing else is refunded.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "UPDATE payment_refunds SET status = 'failed' WHERE id = %s",
                (refund_id,)
            )
            cursor.execute("""
                UPDATE payments
                SET total_refunded = GREATEST(total_refunded - %s, 0),
                    status = CASE WHEN total_refunded - %s <= 0
                                  THEN 'succeeded' ELSE 'partially_refunded' END,
                    updated_at = NOW()
                WHERE id = %s
            """, (amount, amount, payment_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def sync_provider_refund(self, payment_id: int, refunded_total: Decimal,
                             provider_response: Optional[dict] = None) -> Tuple[Optional[Payment], Decimal]:
        """
        Raise total_refunded to what the provider reports, never lower it

        Refunds already reserved through reserve_refund are not counted
        twice. Any excess (a refund made from the provider dashboard) is
        recorded as its own refund row.

        Returns:
            (updated payment, amount newly recorded)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT total_refunded FROM payments WHERE id = %s FOR UPDATE",
                (payment_id,)
            )
            current = cursor.fetchone()
            if not current:
                conn.rollback()
                return None, Decimal('0')

            cursor.execute(f"""
                UPDATE payments
                SET total_refunded = GREATEST(total_refunded, LEAST(%s, amount)),
                    status = CASE WHEN GREATEST(total_refunded, LEAST(%s, amount)) >= amount
                                  THEN 'fully_refunded' ELSE 'partially_refunded' END,
                    provider_response = COALESCE(%s, provider_response),
                    updated_at = NOW()
                WHERE id = %s
                RETURNING {PAYMENT_COLUMNS}
            """, (refunded_total, refunded_total,
                  Json(provider_response) if provider_response is not None else None, payment_id))
            payment = self._map_row_to_payment(cursor.fetchone())

            recorded = payment.total_refunded - Decimal(current['total_refunded'])
            if recorded > 0:
                cursor.execute("""
                    INSERT INTO payment_refunds (payment_id, amount, reason, status, created_at)
                    VALUES (%s, %s, 'Refunded at provider', 'succeeded', NOW())
                """, (payment_id, recorded))

            conn.commit()
            return payment, recorded

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def find_refunds(self, payment_id: int) -> List[PaymentRefund]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {REFUND_COLUMNS}
                FROM payment_refunds
                WHERE payment_id = %s
                ORDER BY created_at
            """, (payment_id,))
            return [PaymentRefund(**row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()


class WebhookLogRepository:
    """Raw webhook payloads, kept for replay and debugging"""

    def create(self, provider: str, event_type: Optional[str], event_id: Optional[str], payload: dict) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO webhook_logs (provider, event_type, event_id, payload, processed, created_at)
                VALUES (%s, %s, %s, %s, FALSE, NOW())
                RETURNING id
            """, (provider, event_type, event_id, Json(payload)))
            log_id = cursor.fetchone()['id']
            conn.commit()
            return log_id

        finally:
            cursor.close()
            conn.close()

    def mark_processed(self, log_id: int, error: Optional[str] = None) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "UPDATE webhook_logs SET processed = %s, error = %s WHERE id = %s",
                (error is None, error, log_id)
            )
            conn.commit()

        finally:
            cursor.close()
            conn.close()
