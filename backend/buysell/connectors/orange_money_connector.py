"""
Orange Money Connector
Collects payments from Orange Money wallets (CI, SN, CM, ML, BF)

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


class OrangeMoneyConnector(PaymentConnector):
    """
    Connector for the Orange Money merchant API

    Handles:
    - Payment initiation (redirect or OTP on the customer's phone)
    - Transaction status lookup
    - Refunds
    """

    provider = 'orange_money'
    display_name = 'Orange Money'
    phone_patterns = (
        r'^\+22507[0-9]{7}$',  # Côte d'Ivoire
        r'^\+22505[0-9]{7}$',
        r'^\+22501[0-9]{7}$',
        r'^\+22177[0-9]{7}$',  # Sénégal
        r'^\+23769[0-9]{7}$',  # Cameroun
        r'^\+223[0-9]{8}$',    # Mali
        r'^\+226[0-9]{8}$',    # Burkina Faso
    )
    insufficient_funds_codes = ('INSUFFICIENT_BALANCE', 'TRANSACTION_DECLINED')
    invalid_number_codes = ('INVALID_PHONE_NUMBER',)

    def __init__(self, api_key: str = None, merchant_code: str = None, auth_token: str = None,
                 base_url: str = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.ORANGE_MONEY_API_KEY
        self.merchant_code = merchant_code or settings.ORANGE_MONEY_MERCHANT_CODE
        self.auth_token = auth_token or settings.ORANGE_MONEY_AUTH_TOKEN

        super().__init__(
            base_url or settings.ORANGE_MONEY_BASE_URL,
            headers={
                'Content-Type': 'application/json',
                'Accept': 'application/json',
                'Authorization': f'Bearer {self.api_key}',
                'X-Merchant-Code': self.merchant_code,
                'X-Auth-Token': self.auth_token,
            },
            transport=transport
        )

    async def create_payment(self, amount: Decimal, currency: str, phone_number: str,
                             order_number: str, callback_url: Optional[str] = None) -> ProviderResult:
        """
        Initiate a wallet payment

        Returns:
            ProviderResult with the transaction ID and, when Orange sends one,
            a hosted payment URL
        """
        self._require_credentials(self.api_key, self.merchant_code)
        formatted_phone = self.validate_phone_number(phone_number)

        payload = {
            'amount': self._whole_amount(amount),
            'currency': currency,
            'customer_phone': formatted_phone,
            'order_id': order_number,
            'description': f'Buysell order {order_number}',
            'return_url': callback_url,
            'metadata': {'source': 'buysell', 'order_id': order_number},
        }

        logger.info(
            f"Orange Money payment for order {order_number}: {amount} {currency} "
            f"from {mask_phone_number(formatted_phone)}"
        )
        data = await self._request('POST', '/payment', json=payload)

        return ProviderResult(
            provider_reference=data.get('transaction_id'),
            status=map_mobile_money_status(data.get('status') or 'PENDING'),
            payment_url=data.get('payment_url'),
            next_action='redirect_or_otp',
            instructions='Follow the Orange Money link or confirm with the OTP sent to your phone',
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
            'metadata': {'processed_by': 'buysell'},
        }
        data = await self._request('POST', '/refund', json=payload)
        return ProviderResult(
            provider_reference=data.get('refund_id'),
            status=map_mobile_money_status(data.get('status')),
            raw=data
        )
