"""
Shared plumbing for payment provider connectors

Every provider client is an async httpx client with a 30 second timeout.
Subclasses describe their base URL, headers, accepted phone numbers and
error codes; this class handles the HTTP round trip and turns provider
failures into PaymentProviderError.

Author: TM3
Date: 2025-11-06
"""
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Any, Tuple

import httpx

from buysell.core.config import settings
from buysell.core.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

# Statuses reported by Orange Money, MTN MoMo and Wave
MOBILE_MONEY_STATUS_MAP = {
    'SUCCESS': 'succeeded',
    'SUCCESSFUL': 'succeeded',
    'COMPLETED': 'succeeded',
    'PENDING': 'pending',
    'PROCESSING': 'processing',
    'FAILED': 'failed',
    'CANCELLED': 'cancelled',
    'REFUNDED': 'refunded',
}

DEFAULT_COUNTRY_PREFIX = '+225'


def normalize_phone_number(phone_number: str) -> str:
    """
    Put a mobile number in international format

    Examples:
        "07 12 34 56 78"  -> "+225712345678"
        "0022507123456"   -> "+22507123456"
        "0712345678"      -> "+225712345678"
    """
    cleaned = re.sub(r'[^\d+]', '', phone_number or '')

    if cleaned.startswith('00'):
        cleaned = '+' + cleaned[2:]

    if cleaned.startswith('0'):
        cleaned = DEFAULT_COUNTRY_PREFIX + cleaned[1:]

    if not cleaned.startswith('+'):
        cleaned = DEFAULT_COUNTRY_PREFIX + cleaned

    return cleaned


def mask_phone_number(phone_number: Optional[str]) -> str:
    """Keep the last 4 digits for logs"""
    if not phone_number:
        return ''
    return '*' * max(len(phone_number) - 4, 0) + phone_number[-4:]


def map_mobile_money_status(status: Optional[str]) -> str:
    """Provider status -> payment status; anything unknown counts as failed"""
    return MOBILE_MONEY_STATUS_MAP.get((status or '').upper(), 'failed')


class PaymentConnector:
    """
    Base class for payment provider clients

    Subclasses set:
        provider: key used in payments.provider
        display_name: human name used in messages
        phone_patterns: regexes a normalized number must match (mobile money)
        insufficient_funds_codes / invalid_number_codes: provider error codes
    """

    provider = ''
    display_name = ''
    phone_patterns: Tuple[str, ...] = ()
    insufficient_funds_codes: Tuple[str, ...] = ()
    invalid_number_codes: Tuple[str, ...] = ()

    def __init__(self, base_url: str, headers: Dict[str, str],
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url.rstrip('/')
        self.headers = headers
        self.transport = transport
        self.timeout = timeout or settings.PAYMENT_TIMEOUT_SECONDS

    def _require_credentials(self, *values: Optional[str]) -> None:
        if not all(values):
            raise PaymentProviderError(
                f"{self.display_name} credentials not configured",
                self.provider,
                status_code=503
            )

    def validate_phone_number(self, phone_number: Optional[str]) -> str:
        """
        Normalize and check a number against the provider's networks

        Raises:
            PaymentProviderError (400): missing or not a number of this network
        """
        if not phone_number:
            raise PaymentProviderError("Phone number is required", self.provider, status_code=400)

        formatted = normalize_phone_number(phone_number)
        if self.phone_patterns and not any(re.match(p, formatted) for p in self.phone_patterns):
            raise PaymentProviderError(
                f"Invalid {self.display_name} phone number",
                self.provider,
                status_code=400
            )
        return formatted

    def _error_from_response(self, response: httpx.Response) -> PaymentProviderError:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if not isinstance(body, dict):
            body = {}

        error = body.get('error') if isinstance(body.get('error'), dict) else body
        code = str(error.get('decline_code') or error.get('code') or error.get('error_code') or '')
        message = (
            error.get('message')
            or error.get('error_message')
            or f"{self.display_name} request failed ({response.status_code})"
        )

        if code.lower() in {c.lower() for c in self.insufficient_funds_codes}:
            status_code = 402
        elif code.lower() in {c.lower() for c in self.invalid_number_codes}:
            status_code = 400
        else:
            status_code = 502

        return PaymentProviderError(message, self.provider, status_code=status_code)

    async def _request(self, method: str, path: str, json: Optional[dict] = None,
                       data: Optional[dict] = None) -> Dict[str, Any]:
        """Send one request; non-2xx answers and transport errors raise PaymentProviderError"""
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport
        ) as client:
            try:
                response = await client.request(method, path, json=json, data=data)
            except httpx.HTTPError as e:
                logger.error(f"{self.display_name} {method} {path} failed: {str(e)}")
                raise PaymentProviderError(
                    f"{self.display_name} is unreachable",
                    self.provider
                ) from e

        if response.status_code >= 400:
            error = self._error_from_response(response)
            logger.error(
                f"{self.display_name} {method} {path} returned {response.status_code}: {error.message}"
            )
            raise error

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _whole_amount(amount: Decimal) -> int:
        return int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
