"""
Payment Service - payment intents, status polling and refunds

One order can have several payment attempts (rows in payments). Each
attempt goes through a provider connector, except cash on delivery which
is only recorded. Success and failure effects are shared with the
webhook handlers so an order ends up in the same state whichever path
reports the outcome first.

Author: TM3
Date: 2025-11-06
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from buysell.connectors.mtn_money_connector import MTNMoneyConnector
from buysell.connectors.orange_money_connector import OrangeMoneyConnector
from buysell.connectors.payment_connector import PaymentConnector
from buysell.connectors.stripe_connector import StripeConnector, from_stripe_amount
from buysell.connectors.wave_connector import WaveConnector
from buysell.core.auth import TokenUser
from buysell.core.config import settings
from buysell.core.constants import (
    CARD_PROVIDERS,
    MIN_PAYMENT_AMOUNT,
    MOBILE_MONEY_PROVIDERS,
    PROVIDER_ORDER_METHOD,
)
from buysell.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PaymentProviderError,
)
from buysell.domain.order import Order
from buysell.domain.payment import (
    Payment,
    PaymentIntentCreate,
    PaymentRefund,
    ProviderResult,
    RefundRequest,
)
from buysell.repositories.order_repository import OrderRepository
from buysell.repositories.payment_repository import PaymentRepository
from buysell.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

CONNECTOR_CLASSES = {
    'orange_money': OrangeMoneyConnector,
    'mtn_money': MTNMoneyConnector,
    'wave': WaveConnector,
    'stripe': StripeConnector,
}

# Where each method can be used and for which amounts
PAYMENT_METHOD_RULES = [
    {
        'method': 'cash',
        'name': 'Cash on delivery',
        'type': 'cash',
        'countries': None,
        'currencies': None,
        'min_amount': Decimal('0'),
        'max_amount': Decimal('1000000'),
    },
    {
        'method': 'mtn_money',
        'name': 'MTN Mobile Money',
        'type': 'mobile_money',
        'countries': ('CI',),
        'currencies': None,
        'min_amount': Decimal('100'),
        'max_amount': Decimal('500000'),
    },
    {
        'method': 'orange_money',
        'name': 'Orange Money',
        'type': 'mobile_money',
        'countries': ('CI', 'SN', 'CM'),
        'currencies': None,
        'min_amount': Decimal('100'),
        'max_amount': Decimal('500000'),
    },
    {
        'method': 'wave',
        'name': 'Wave',
        'type': 'mobile_money',
        'countries': ('CI', 'SN'),
        'currencies': None,
        'min_amount': Decimal('100'),
        'max_amount': Decimal('1000000'),
    },
    {
        'method': 'stripe',
        'name': 'Card (Stripe)',
        'type': 'card',
        'countries': None,
        'currencies': ('XOF', 'XAF', 'EUR', 'USD'),
        'min_amount': Decimal('100'),
        'max_amount': Decimal('10000000'),
    },
]

DEFAULT_METHOD_BY_COUNTRY = {
    'CI': 'cash',
    'SN': 'cash',
    'CM': 'cash',
    'FR': 'stripe',
    'US': 'stripe',
}


def available_payment_methods(country: str, amount: Decimal, currency: str = 'XOF') -> dict:
    """
    Methods usable for a country, amount and currency

    Returns:
        {'methods': [...], 'default_method': 'cash' | ... | None}
    """
    country = (country or '').upper()
    currency = (currency or 'XOF').upper()

    methods = []
    for rule in PAYMENT_METHOD_RULES:
        if rule['countries'] is not None and country not in rule['countries']:
            continue
        if rule['currencies'] is not None and currency not in rule['currencies']:
            continue
        if not (rule['min_amount'] <= amount <= rule['max_amount']):
            continue
        methods.append({
            'method': rule['method'],
            'name': rule['name'],
            'type': rule['type'],
            'min_amount': float(rule['min_amount']),
            'max_amount': float(rule['max_amount']),
        })

    available = [m['method'] for m in methods]
    default = DEFAULT_METHOD_BY_COUNTRY.get(country)
    if default not in available:
        default = available[0] if available else None

    return {'methods': methods, 'default_method': default}


class PaymentService:
    """
    Business logic for payments

    Handles:
    - Intent creation through the provider connectors
    - Status polling for unfinished attempts
    - Refunds (admin)
    - Success / failure / refund effects on payments and orders
    """

    def __init__(self, payment_repo: PaymentRepository = None, order_repo: OrderRepository = None,
                 notification_service: NotificationService = None,
                 connectors: Optional[Dict[str, PaymentConnector]] = None):
        self.payment_repo = payment_repo or PaymentRepository()
        self.order_repo = order_repo or OrderRepository()
        self.notifications = notification_service or NotificationService()
        self._connectors = dict(connectors or {})

    def get_connector(self, provider: str) -> PaymentConnector:
        if provider not in self._connectors:
            connector_class = CONNECTOR_CLASSES.get(provider)
            if connector_class is None:
                raise BadRequestError(f"Unsupported payment provider: {provider}")
            self._connectors[provider] = connector_class()
        return self._connectors[provider]

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def _get_payment_for(self, payment_id: int, user: TokenUser) -> Payment:
        payment = self.payment_repo.find_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        if not (user.is_admin or payment.user_id == user.id):
            raise ForbiddenError("You do not have access to this payment")
        return payment

    def _get_order_for(self, order_id: int, user: TokenUser) -> Order:
        order = self.order_repo.find_by_id(order_id, include_items=False)
        if not order:
            raise NotFoundError("Order not found")
        if not (user.is_admin or order.is_owned_by(user.id)):
            raise ForbiddenError("You do not have access to this order")
        return order

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    async def create_intent(self, user: TokenUser, payload: PaymentIntentCreate) -> dict:
        """
        Start paying an order with the chosen method

        An unfinished attempt for the same order and method is returned
        instead of starting a new one.

        Raises:
            NotFoundError / ForbiddenError: order missing or not the caller's
            BadRequestError: order not payable, amount too small, missing phone
                             number or payment method ID
            PaymentProviderError: provider refused or was unreachable
        """
        order = self._get_order_for(payload.order_id, user)
        provider = payload.payment_method

        if order.status != 'pending' or order.is_paid:
            raise BadRequestError("Order is not awaiting payment")

        amount = order.total_amount
        if amount < MIN_PAYMENT_AMOUNT:
            raise BadRequestError(f"Minimum payment amount is {MIN_PAYMENT_AMOUNT} {order.currency}")

        if provider in MOBILE_MONEY_PROVIDERS and not payload.phone_number:
            raise BadRequestError("Phone number is required for mobile money payments")
        if provider in CARD_PROVIDERS and not payload.payment_method_id:
            raise BadRequestError("payment_method_id is required for card payments")

        in_flight = self.payment_repo.find_in_flight(order.id, provider)
        if in_flight:
            logger.info(f"Reusing payment {in_flight.id} for order {order.order_number}")
            return {'payment': in_flight.to_dict(), 'instructions': None}

        payment = self.payment_repo.create(
            order.id, user.id, provider, amount, order.currency, payload.phone_number
        )
        logger.info(f"Payment {payment.id} initiated for order {order.order_number} via {provider}")

        if provider == 'cash':
            result = ProviderResult(
                provider_reference=f"CASH_{payment.id}",
                status='pending_cash',
                next_action='wait_for_delivery',
                instructions='Pay the courier when your order is delivered',
            )
        else:
            result = await self._start_provider_payment(payment, order, payload, user)

        payment = self.payment_repo.update(
            payment.id,
            status=result.status,
            provider_reference=result.provider_reference,
            provider_response=result.raw,
            next_action=result.next_action,
            payment_url=result.payment_url,
        )
        self.order_repo.update_payment(
            order.id,
            payment_status='pending',
            payment_method=PROVIDER_ORDER_METHOD[provider],
        )

        if result.status == 'succeeded':
            payment = self.apply_success(payment)
        elif result.status == 'failed':
            payment = self.apply_failure(payment, result.failure_message or 'Payment failed')

        return {'payment': payment.to_dict(), 'instructions': result.instructions}

    async def _start_provider_payment(self, payment: Payment, order: Order,
                                      payload: PaymentIntentCreate, user: TokenUser) -> ProviderResult:
        connector = self.get_connector(payment.provider)
        try:
            if payment.provider in CARD_PROVIDERS:
                return await connector.create_payment(
                    amount=payment.amount,
                    currency=payment.currency,
                    order_number=order.order_number,
                    payment_method_id=payload.payment_method_id,
                    customer_email=user.email,
                )
            return await connector.create_payment(
                amount=payment.amount,
                currency=payment.currency,
                phone_number=payload.phone_number,
                order_number=order.order_number,
                callback_url=f"{settings.APP_URL}/api/v1/webhooks/mobile-money/{payment.provider}",
            )
        except PaymentProviderError as e:
            self.payment_repo.update(payment.id, status='failed', failure_message=e.message)
            logger.error(f"Payment {payment.id} failed at {payment.provider}: {e.message}")
            raise

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_status(self, payment_id: int, user: TokenUser) -> Payment:
        """Stored payment, refreshed from the provider while it is unfinished"""
        payment = self._get_payment_for(payment_id, user)

        if payment.is_final or payment.provider == 'cash' or not payment.provider_reference:
            return payment

        result = await self.get_connector(payment.provider).get_status(payment.provider_reference)
        return self.apply_provider_status(payment, result.status, result.raw, result.failure_message)

    def list_for_order(self, order_id: int, user: TokenUser) -> List[Payment]:
        self._get_order_for(order_id, user)
        return self.payment_repo.find_by_order(order_id)

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def apply_provider_status(self, payment: Payment, status: str, raw: Optional[dict] = None,
                              failure_message: Optional[str] = None) -> Payment:
        """Route a provider-reported status to the matching effect"""
        if status == payment.status:
            return payment
        if status == 'succeeded':
            return self.apply_success(payment, raw)
        if status == 'failed':
            return self.apply_failure(payment, failure_message or 'Payment failed', raw)
        if status == 'refunded':
            return self.apply_refunded(payment, raw)

        logger.info(f"Payment {payment.id}: {payment.status} -> {status}")
        return self.payment_repo.update(payment.id, status=status, provider_response=raw)

    def apply_success(self, payment: Payment, raw: Optional[dict] = None) -> Payment:
        if payment.status == 'succeeded':
            return payment

        fields = {'status': 'succeeded'}
        if raw is not None:
            fields['provider_response'] = raw
        updated = self.payment_repo.update(payment.id, mark_paid=True, **fields)
        self.order_repo.update_payment(payment.order_id, payment_status='paid', mark_paid=True)

        logger.info(f"Payment {payment.id} succeeded for order {payment.order_id}")
        self.notifications.notify(
            payment.user_id,
            'PAYMENT_SUCCESS',
            'Payment received',
            f"We received your payment of {payment.amount} {payment.currency}.",
            {'payment_id': payment.id, 'order_id': payment.order_id},
        )
        return updated

    def apply_failure(self, payment: Payment, message: str, raw: Optional[dict] = None) -> Payment:
        fields = {'status': 'failed', 'failure_message': message}
        if raw is not None:
            fields['provider_response'] = raw
        updated = self.payment_repo.update(payment.id, **fields)
        self.order_repo.update_payment(payment.order_id, payment_status='failed')

        logger.warning(f"Payment {payment.id} failed for order {payment.order_id}: {message}")
        self.notifications.notify(
            payment.user_id,
            'PAYMENT_FAILED',
            'Payment failed',
            f"Your payment could not be completed: {message}",
            {'payment_id': payment.id, 'order_id': payment.order_id},
        )
        return updated

    def apply_refunded(self, payment: Payment, raw: Optional[dict] = None) -> Payment:
        """
        Provider reports money returned outside the refund endpoint

        A Stripe charge carries amount_refunded, which may be partial. Other
        providers only report the whole payment as refunded.
        """
        refunded_total = self._reported_refund_total(payment, raw)
        updated, recorded = self.payment_repo.sync_provider_refund(payment.id, refunded_total, raw)
        if updated is None:
            return payment

        self.order_repo.sync_refund_status(payment.id)
        if recorded > 0:
            logger.info(f"Payment {payment.id}: {recorded} {payment.currency} refunded at {payment.provider} "
                        f"({updated.status})")
        return updated

    @staticmethod
    def _reported_refund_total(payment: Payment, raw: Optional[dict]) -> Decimal:
        if not raw or raw.get('amount_refunded') is None:
            return payment.amount

        currency = raw.get('currency') or payment.currency
        refunded = int(raw['amount_refunded'])
        charged = raw.get('amount')
        if charged is not None and refunded >= int(charged):
            return payment.amount
        return min(from_stripe_amount(refunded, currency), payment.amount)

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    async def refund(self, payment_id: int, admin: TokenUser, payload: RefundRequest) -> dict:
        """
        Refund all or part of a successful payment

        The amount is reserved on the payment row before the provider is
        called and released again if the provider refuses.

        Raises:
            NotFoundError: payment missing
            BadRequestError: not refundable or amount above what is left
            PaymentProviderError: provider refused the refund
        """
        payment = self.payment_repo.find_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        if not payment.can_refund:
            raise BadRequestError(f"Payment cannot be refunded in status '{payment.status}'")

        remaining = payment.refundable_amount
        amount = payload.amount if payload.amount is not None else remaining
        if amount > remaining:
            raise BadRequestError(f"Refund amount exceeds the refundable amount ({remaining})")

        reason = payload.reason or 'Refund request'
        pending, new_status = self.payment_repo.reserve_refund(payment.id, amount, payload.reason, admin.id)

        provider_reference = None
        if payment.provider != 'cash':
            connector = self.get_connector(payment.provider)
            try:
                if payment.provider in CARD_PROVIDERS:
                    result = await connector.refund(payment.provider_reference, amount, payment.currency, reason)
                else:
                    result = await connector.refund(payment.provider_reference, amount, reason)
            except Exception:
                self.payment_repo.release_refund(pending.id, payment.id, amount)
                logger.error(f"Refund {pending.id} on payment {payment.id} refused by {payment.provider}, "
                             f"released {amount} {payment.currency}")
                raise
            provider_reference = result.provider_reference

        refund = self.payment_repo.complete_refund(pending.id, provider_reference)
        self.order_repo.sync_refund_status(payment.id)

        logger.info(f"Refunded {amount} {payment.currency} on payment {payment.id} ({new_status})")
        self.notifications.notify(
            payment.user_id,
            'PAYMENT_REFUNDED',
            'Refund issued',
            f"{amount} {payment.currency} has been refunded.",
            {'payment_id': payment.id, 'order_id': payment.order_id, 'amount': float(amount)},
        )

        return {
            'refund': refund.to_dict(),
            'payment': self.payment_repo.find_by_id(payment.id).to_dict(),
        }

    def list_refunds(self, payment_id: int, user: TokenUser) -> List[PaymentRefund]:
        self._get_payment_for(payment_id, user)
        return self.payment_repo.find_refunds(payment_id)
