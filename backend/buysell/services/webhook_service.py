"""
Webhook Service - provider callbacks

Every callback is stored in webhook_logs before it is processed, then
marked processed (or given the error) so failed deliveries can be
inspected and replayed.

Author: TM3
Date: 2025-11-07
"""
import hashlib
import hmac
import json
import logging
from typing import Optional

from buysell.connectors.payment_connector import map_mobile_money_status
from buysell.connectors.stripe_connector import verify_webhook_signature
from buysell.core.config import settings
from buysell.core.constants import MOBILE_MONEY_PROVIDERS
from buysell.core.exceptions import BadRequestError, NotFoundError
from buysell.repositories.payment_repository import PaymentRepository, WebhookLogRepository
from buysell.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


def verify_mobile_money_signature(payload: bytes, signature: Optional[str], secret: str) -> None:
    """X-Signature is the hex HMAC-SHA256 of the raw body"""
    if not signature or not secret:
        raise BadRequestError("Missing webhook signature")

    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature.strip()):
        raise BadRequestError("Invalid webhook signature")


class WebhookService:

    def __init__(self, payment_service: PaymentService = None, payment_repo: PaymentRepository = None,
                 webhook_log_repo: WebhookLogRepository = None):
        self.payment_repo = payment_repo or PaymentRepository()
        self.payment_service = payment_service or PaymentService(payment_repo=self.payment_repo)
        self.webhook_logs = webhook_log_repo or WebhookLogRepository()

    def _process_logged(self, provider: str, event_type: Optional[str], event_id: Optional[str],
                        payload: dict, handler) -> dict:
        log_id = self.webhook_logs.create(provider, event_type, event_id, payload)
        try:
            result = handler()
        except Exception as e:
            self.webhook_logs.mark_processed(log_id, error=str(e))
            raise
        self.webhook_logs.mark_processed(log_id)
        return result

    # ------------------------------------------------------------------
    # Stripe
    # ------------------------------------------------------------------

    def handle_stripe(self, raw_body: bytes, signature_header: Optional[str]) -> dict:
        """
        payment_intent.succeeded      -> success effects
        payment_intent.payment_failed -> failure effects
        charge.refunded               -> refunded total synced from the charge
        anything else                 -> acknowledged, nothing done
        """
        event = verify_webhook_signature(raw_body, signature_header, settings.STRIPE_WEBHOOK_SECRET)
        event_type = event.get('type')
        data = event.get('data')
        data_object = data.get('object') if isinstance(data, dict) else None
        if not isinstance(data_object, dict):
            data_object = {}

        return self._process_logged(
            'stripe', event_type, event.get('id'), event,
            lambda: self._apply_stripe_event(event_type, data_object)
        )

    def _apply_stripe_event(self, event_type: Optional[str], data_object: dict) -> dict:
        if event_type == 'payment_intent.succeeded':
            payment = self._payment_for('stripe', data_object.get('id'))
            self.payment_service.apply_success(payment, data_object)
        elif event_type == 'payment_intent.payment_failed':
            payment = self._payment_for('stripe', data_object.get('id'))
            message = (data_object.get('last_payment_error') or {}).get('message') or 'Card payment failed'
            self.payment_service.apply_failure(payment, message, data_object)
        elif event_type == 'charge.refunded':
            payment = self._payment_for('stripe', data_object.get('payment_intent'))
            self.payment_service.apply_refunded(payment, data_object)
        else:
            logger.info(f"Ignoring Stripe event {event_type}")
            return {'received': True, 'handled': False}

        return {'received': True, 'handled': True}

    # ------------------------------------------------------------------
    # Mobile money
    # ------------------------------------------------------------------

    def handle_mobile_money(self, provider: str, raw_body: bytes, signature: Optional[str]) -> dict:
        """Callback with {"transaction_id", "status"} from Orange Money, MTN or Wave"""
        if provider not in MOBILE_MONEY_PROVIDERS:
            raise NotFoundError(f"Unknown mobile money provider: {provider}")

        verify_mobile_money_signature(raw_body, signature, settings.MOBILE_MONEY_WEBHOOK_SECRET)

        try:
            payload = json.loads(raw_body)
        except ValueError:
            raise BadRequestError("Invalid webhook payload")
        if not isinstance(payload, dict):
            raise BadRequestError("Invalid webhook payload")

        transaction_id = payload.get('transaction_id')
        if not transaction_id:
            raise BadRequestError("transaction_id is required")

        return self._process_logged(
            provider, payload.get('status'), transaction_id, payload,
            lambda: self._apply_mobile_money_event(provider, transaction_id, payload)
        )

    def _apply_mobile_money_event(self, provider: str, transaction_id: str, payload: dict) -> dict:
        payment = self._payment_for(provider, transaction_id)
        status = map_mobile_money_status(payload.get('status'))
        self.payment_service.apply_provider_status(
            payment, status, payload, payload.get('message') or payload.get('error_message')
        )
        return {'received': True, 'handled': True, 'status': status}

    def _payment_for(self, provider: str, reference: Optional[str]):
        payment = self.payment_repo.find_by_reference(reference, provider) if reference else None
        if not payment:
            raise NotFoundError(f"No {provider} payment with reference {reference}")
        return payment
