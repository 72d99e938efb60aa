"""
Stripe Connector
Card payments through the Stripe REST API (form-encoded requests)

Author: TM3
Date: 2025-11-06
"""
import hashlib
import hmac
import json
import logging
import time
from decimal import Decimal
from typing import Dict, Optional

import httpx

from buysell.connectors.payment_connector import PaymentConnector
from buysell.core.config import settings
from buysell.core.exceptions import BadRequestError
from buysell.domain.payment import ProviderResult

logger = logging.getLogger(__name__)

# Currencies Stripe already counts in whole units
ZERO_DECIMAL_CURRENCIES = ('XOF', 'XAF')

STRIPE_STATUS_MAP = {
    'succeeded': 'succeeded',
    'processing': 'processing',
    'requires_payment_method': 'pending',
    'requires_confirmation': 'pending',
    'requires_action': 'pending',
    'requires_capture': 'pending',
    'canceled': 'cancelled',
}

SIGNATURE_TOLERANCE_SECONDS = 300


def map_stripe_status(status: Optional[str]) -> str:
    return STRIPE_STATUS_MAP.get(status or '', 'failed')


def to_stripe_amount(amount: Decimal, currency: str) -> int:
    """Smallest currency unit: XOF/XAF unchanged, others in cents"""
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(Decimal(amount))
    return int(Decimal(amount) * 100)


def from_stripe_amount(amount: int, currency: str) -> Decimal:
    """Inverse of to_stripe_amount"""
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(amount)
    return Decimal(amount) / 100


def verify_webhook_signature(payload: bytes, signature_header: Optional[str], secret: str,
                             tolerance: int = SIGNATURE_TOLERANCE_SECONDS,
                             now: Optional[float] = None) -> Dict:
    """
    Check a Stripe-Signature header and return the parsed event

    Header format: "t=1700000000,v1=<hex hmac>[,v1=...]". The signature is
    HMAC-SHA256 of "{t}.{raw body}" with the endpoint secret.

    Raises:
        BadRequestError: header missing/malformed, no matching signature,
                         timestamp outside the tolerance, or body not JSON
    """
    if not signature_header or not secret:
        raise BadRequestError("Missing Stripe signature")

    timestamp = None
    signatures = []
    for part in signature_header.split(','):
        key, _, value = part.strip().partition('=')
        if key == 't':
            timestamp = value
        elif key == 'v1':
            signatures.append(value)

    if not timestamp or not timestamp.isdigit() or not signatures:
        raise BadRequestError("Invalid Stripe signature header")

    signed_payload = f"{timestamp}.".encode() + payload
    expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()

    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise BadRequestError("Invalid Stripe signature")

    current_time = now if now is not None else time.time()
    if abs(current_time - int(timestamp)) > tolerance:
        raise BadRequestError("Stripe signature timestamp outside tolerance")

    try:
        event = json.loads(payload)
    except ValueError:
        raise BadRequestError("Invalid webhook payload")

    if not isinstance(event, dict):
        raise BadRequestError("Invalid webhook payload")
    return event


class StripeConnector(PaymentConnector):
    """
    Connector for Stripe PaymentIntents

    Handles:
    - PaymentIntent creation and confirmation
    - PaymentIntent retrieval (status polling)
    - Refunds
    """

    provider = 'stripe'
    display_name = 'Stripe'
    insufficient_funds_codes = ('insufficient_funds',)
    invalid_number_codes = ('incorrect_number', 'invalid_number')

    def __init__(self, secret_key: str = None, base_url: str = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY

        super().__init__(
            base_url or settings.STRIPE_BASE_URL,
            headers={
                'Authorization': f'Bearer {self.secret_key}',
                'Content-Type': 'application/x-www-form-urlencoded',
            },
            transport=transport
        )

    @staticmethod
    def _result(data: dict) -> ProviderResult:
        status = map_stripe_status(data.get('status'))
        next_action = None
        payment_url = None

        if data.get('status') == 'requires_action':
            next_action = 'authenticate'
            redirect = (data.get('next_action') or {}).get('redirect_to_url') or {}
            payment_url = redirect.get('url')

        failure_message = (data.get('last_payment_error') or {}).get('message')

        return ProviderResult(
            provider_reference=data.get('id'),
            status=status,
            payment_url=payment_url,
            next_action=next_action,
            failure_message=failure_message,
            raw=data
        )

    async def create_payment(self, amount: Decimal, currency: str, order_number: str,
                             payment_method_id: str, customer_email: Optional[str] = None,
                             return_url: Optional[str] = None) -> ProviderResult:
        """Create and confirm a PaymentIntent in one call"""
        self._require_credentials(self.secret_key)

        form = {
            'amount': to_stripe_amount(amount, currency),
            'currency': currency.lower(),
            'payment_method': payment_method_id,
            'confirm': 'true',
            'description': f'Buysell order {order_number}',
            'metadata[order_number]': order_number,
            'return_url': return_url or f"{settings.FRONTEND_URL}/orders",
        }
        if customer_email:
            form['receipt_email'] = customer_email

        logger.info(f"Stripe PaymentIntent for order {order_number}: {amount} {currency}")
        data = await self._request('POST', '/payment_intents', data=form)
        return self._result(data)

    async def get_status(self, payment_intent_id: str) -> ProviderResult:
        data = await self._request('GET', f'/payment_intents/{payment_intent_id}')
        return self._result(data)

    async def refund(self, payment_intent_id: str, amount: Decimal, currency: str = 'XOF',
                     reason: Optional[str] = None) -> ProviderResult:
        form = {
            'payment_intent': payment_intent_id,
            'amount': to_stripe_amount(amount, currency),
        }
        if reason:
            form['metadata[reason]'] = reason

        data = await self._request('POST', '/refunds', data=form)
        return ProviderResult(
            provider_reference=data.get('id'),
            status='refunded' if data.get('status') == 'succeeded' else map_stripe_status(data.get('status')),
            raw=data
        )
