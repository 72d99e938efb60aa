"""
MTN Mobile Money Connector
Collections from MTN MoMo wallets in Côte d'Ivoire

Author: TM3
Date: 2025-11-06
"""
import logging
from decimal import Decimal
from typing import Optional

import httpx

from buysell.connectors.payment_connector import (
    PaymentConnector,
    map_mobile_money_status,
    mask_phone_number,
)
from buysell.core.config import settings
from buysell.domain.payment import ProviderResult

logger = logging.getLogger(__name__)


class MTNMoneyConnector(PaymentConnector):
    """Connector for the MTN MoMo collection API"""

    provider = 'mtn_money'
    display_name = 'MTN Mobile Money'
    phone_patterns = (
        r'^\+22507[0-9]{7}$',
        r'^\+22505[0-9]{7}$',
        r'^\+22501[0-9]{7}$',
        r'^\+22547[0-9]{7}$',
        r'^\+22548[0-9]{7}$',
        r'^\+22549[0-9]{7}$',
    )
    insufficient_funds_codes = ('INSUFFICIENT_FUNDS', 'PAYER_LIMIT_REACHED')
    invalid_number_codes = ('INVALID_MSISDN',)

    def __init__(self, api_key: str = None, subscription_key: str = None,
                 base_url: str = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.MTN_MONEY_API_KEY
        self.subscription_key = subscription_key or settings.MTN_MONEY_SUBSCRIPTION_KEY

        super().__init__(
            base_url or settings.MTN_MONEY_BASE_URL,
            headers={
                'Content-Type': 'application/json',
                'Accept': 'application/json',
                'Authorization': f'Bearer {self.api_key}',
                'Ocp-Apim-Subscription-Key': self.subscription_key,
            },
            transport=transport
        )

    async def create_payment(self, amount: Decimal, currency: str, phone_number: str,
                             order_number: str, callback_url: Optional[str] = None) -> ProviderResult:
        """Request-to-pay; the customer approves with an OTP on their phone"""
        self._require_credentials(self.api_key)
        formatted_phone = self.validate_phone_number(phone_number)

        payload = {
            'amount': self._whole_amount(amount),
            'currency': currency,
            'customer_msisdn': formatted_phone,
            'merchant_reference': order_number,
            'description': f'Buysell order {order_number}',
            'callback_url': callback_url,
            'metadata': {'source': 'buysell', 'order_id': order_number},
        }

        logger.info(
            f"MTN MoMo payment for order {order_number}: {amount} {currency} "
            f"from {mask_phone_number(formatted_phone)}"
        )
        data = await self._request('POST', '/collection', json=payload)

        return ProviderResult(
            provider_reference=data.get('transaction_id'),
            status=map_mobile_money_status(data.get('status') or 'PENDING'),
            next_action='verify_otp',
            instructions='Confirm the payment with the OTP sent to your phone',
            raw=data
        )

    async def get_status(self, transaction_id: str) -> ProviderResult:
        data = await self._request('GET', f'/transaction/{transaction_id}')
        return ProviderResult(
            provider_reference=data.get('transaction_id') or transaction_id,
            status=map_mobile_money_status(data.get('status')),
            raw=data
        )

    async def refund(self, transaction_id: str, amount: Decimal,
                     reason: str = 'Refund request') -> ProviderResult:
        payload = {
            'original_transaction_id': transaction_id,
            'amount': self._whole_amount(amount),
            'reason': reason,
        }
        data = await self._request('POST', '/refund', json=payload)
        return ProviderResult(
            provider_reference=data.get('refund_id'),
            status=map_mobile_money_status(data.get('status')),
            raw=data
        )
