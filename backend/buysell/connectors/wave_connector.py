"""
Wave Connector
Wave charges (Côte d'Ivoire and Sénégal). Wave counts amounts in
hundredths, so amounts are multiplied by 100 on the way out and divided
on the way back.

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


class WaveConnector(PaymentConnector):
    """Connector for the Wave charges API"""

    provider = 'wave'
    display_name = 'Wave'
    phone_patterns = (
        r'^\+22507[0-9]{7}$',
        r'^\+22505[0-9]{7}$',
        r'^\+22501[0-9]{7}$',
        r'^\+22177[0-9]{7}$',
        r'^\+22176[0-9]{7}$',
    )
    insufficient_funds_codes = ('insufficient_funds', 'payment_declined')
    invalid_number_codes = ('invalid_phone_number',)

    def __init__(self, api_key: str = None, base_url: str = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.WAVE_API_KEY

        super().__init__(
            base_url or settings.WAVE_BASE_URL,
            headers={
                'Content-Type': 'application/json',
                'Accept': 'application/json',
                'Authorization': f'Bearer {self.api_key}',
            },
            transport=transport
        )

    @staticmethod
    def to_wire_amount(amount: Decimal) -> int:
        return int(Decimal(amount) * 100)

    async def create_payment(self, amount: Decimal, currency: str, phone_number: str,
                             order_number: str, callback_url: Optional[str] = None) -> ProviderResult:
        self._require_credentials(self.api_key)
        formatted_phone = self.validate_phone_number(phone_number)

        payload = {
            'amount': self.to_wire_amount(amount),
            'currency': currency.lower(),
            'customer': {'phone_number': formatted_phone},
            'callback_url': callback_url,
            'metadata': {
                'order_id': order_number,
                'description': f'Buysell order {order_number}',
                'source': 'buysell',
            },
        }

        logger.info(
            f"Wave charge for order {order_number}: {amount} {currency} "
            f"from {mask_phone_number(formatted_phone)}"
        )
        data = await self._request('POST', '/charges', json=payload)

        return ProviderResult(
            provider_reference=data.get('id'),
            status=map_mobile_money_status(data.get('status') or 'PENDING'),
            payment_url=data.get('hosted_url'),
            next_action='redirect_or_qr',
            instructions='Scan the QR code or open the Wave payment link',
            raw=data
        )

    async def get_status(self, charge_id: str) -> ProviderResult:
        data = await self._request('GET', f'/charges/{charge_id}')
        return ProviderResult(
            provider_reference=data.get('id') or charge_id,
            status=map_mobile_money_status(data.get('status')),
            payment_url=data.get('hosted_url'),
            raw=data
        )

    async def cancel(self, charge_id: str) -> ProviderResult:
        data = await self._request('POST', f'/charges/{charge_id}/cancel')
        return ProviderResult(
            provider_reference=charge_id,
            status=map_mobile_money_status(data.get('status') or 'CANCELLED'),
            raw=data
        )

    async def refund(self, charge_id: str, amount: Decimal,
                     reason: str = 'Refund request') -> ProviderResult:
        payload = {'amount': self.to_wire_amount(amount), 'reason': reason}
        data = await self._request('POST', f'/charges/{charge_id}/refund', json=payload)
        return ProviderResult(
            provider_reference=data.get('id'),
            status=map_mobile_money_status(data.get('status')),
            raw=data
        )
