"""
Tests for the mobile money connectors (Orange Money, MTN MoMo, Wave)

Provider APIs are replaced with httpx.MockTransport so the full request
building and response mapping path runs without network access.
"""
import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from buysell.connectors.mtn_money_connector import MTNMoneyConnector
from buysell.connectors.orange_money_connector import OrangeMoneyConnector
from buysell.connectors.payment_connector import (
    map_mobile_money_status,
    mask_phone_number,
    normalize_phone_number,
)
from buysell.connectors.wave_connector import WaveConnector
from buysell.core.exceptions import PaymentProviderError

ORANGE_URL = "https://orange.test/api"


def recording_transport(status_code=200, body=None, calls=None):
    """MockTransport answering every request with the same JSON, remembering what it saw"""
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})
    return httpx.MockTransport(handler)


def orange(transport, **overrides) -> OrangeMoneyConnector:
    kwargs = {"api_key": "om-key", "merchant_code": "M123", "auth_token": "tok", "base_url": ORANGE_URL}
    kwargs.update(overrides)
    return OrangeMoneyConnector(transport=transport, **kwargs)


class TestPhoneNumbers:

    @pytest.mark.parametrize("raw,expected", [
        ("07 12 34 56 7", "+22571234567"),
        ("0712345678", "+225712345678"),
        ("00225 07 1234567", "+225071234567"),
        ("+221 77 123 45 67", "+221771234567"),
        ("7123456", "+2257123456"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_phone_number(raw) == expected

    def test_mask_keeps_last_four_digits(self):
        assert mask_phone_number("+22507123456") == "********3456"
        assert mask_phone_number(None) == ""

    @pytest.mark.parametrize("status,expected", [
        ("SUCCESS", "succeeded"),
        ("successful", "succeeded"),
        ("PENDING", "pending"),
        ("CANCELLED", "cancelled"),
        ("WHATEVER", "failed"),
        (None, "failed"),
    ])
    def test_status_map(self, status, expected):
        assert map_mobile_money_status(status) == expected


class TestOrangeMoney:

    def test_create_payment(self):
        # Arrange
        calls = []
        transport = recording_transport(body={
            "transaction_id": "OM-1", "status": "PENDING", "payment_url": "https://pay.orange/OM-1"
        }, calls=calls)

        # Act
        result = asyncio.run(orange(transport).create_payment(
            Decimal("26600.40"), "XOF", "+225 07 1234567", "BS-1-ABC"
        ))

        # Assert
        assert result.provider_reference == "OM-1"
        assert result.status == "pending"
        assert result.payment_url == "https://pay.orange/OM-1"

        request = calls[0]
        assert request.method == "POST"
        assert str(request.url) == f"{ORANGE_URL}/payment"
        assert request.headers["Authorization"] == "Bearer om-key"
        assert request.headers["X-Merchant-Code"] == "M123"
        sent = json.loads(request.content)
        assert sent["amount"] == 26600
        assert sent["customer_phone"] == "+225071234567"
        assert sent["order_id"] == "BS-1-ABC"

    def test_invalid_phone_never_reaches_provider(self):
        calls = []

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(orange(recording_transport(calls=calls)).create_payment(
                Decimal("1000"), "XOF", "+33612345678", "BS-1-ABC"
            ))

        assert exc_info.value.status_code == 400
        assert calls == []

    def test_missing_credentials(self):
        connector = orange(recording_transport())
        connector.api_key = ""

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(connector.create_payment(Decimal("1000"), "XOF", "+225071234567", "BS-1-ABC"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.provider == "orange_money"

    def test_insufficient_balance_maps_to_402(self):
        transport = recording_transport(400, {"code": "INSUFFICIENT_BALANCE", "message": "Solde insuffisant"})

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(orange(transport).create_payment(Decimal("1000"), "XOF", "+225071234567", "BS-1"))

        assert exc_info.value.status_code == 402
        assert exc_info.value.message == "Solde insuffisant"

    def test_server_error_maps_to_502(self):
        transport = recording_transport(500, {})

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(orange(transport).get_status("OM-1"))

        assert exc_info.value.status_code == 502
        assert "Orange Money request failed (500)" in exc_info.value.message

    def test_network_error_maps_to_502(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(orange(httpx.MockTransport(handler)).get_status("OM-1"))

        assert exc_info.value.status_code == 502
        assert "unreachable" in exc_info.value.message

    def test_get_status(self):
        calls = []
        transport = recording_transport(body={"transaction_id": "OM-1", "status": "SUCCESS"}, calls=calls)

        result = asyncio.run(orange(transport).get_status("OM-1"))

        assert result.status == "succeeded"
        assert calls[0].url.path.endswith("/transaction/OM-1")

    def test_refund(self):
        calls = []
        transport = recording_transport(body={"refund_id": "RF-1", "status": "SUCCESS"}, calls=calls)

        result = asyncio.run(orange(transport).refund("OM-1", Decimal("5000"), "Damaged item"))

        assert result.provider_reference == "RF-1"
        sent = json.loads(calls[0].content)
        assert sent == {
            "original_transaction_id": "OM-1",
            "amount": 5000,
            "reason": "Damaged item",
            "metadata": {"processed_by": "buysell"},
        }


class TestMTNMoney:

    def test_create_payment_posts_collection(self):
        calls = []
        transport = recording_transport(body={"transaction_id": "MTN-1", "status": "PENDING"}, calls=calls)
        connector = MTNMoneyConnector(api_key="k", subscription_key="s",
                                      base_url="https://mtn.test", transport=transport)

        result = asyncio.run(connector.create_payment(Decimal("1500"), "XOF", "+225 05 4812345", "BS-2"))

        assert result.next_action == "verify_otp"
        assert calls[0].url.path == "/collection"
        assert calls[0].headers["Ocp-Apim-Subscription-Key"] == "s"
        assert json.loads(calls[0].content)["customer_msisdn"] == "+225054812345"

    def test_unknown_msisdn(self):
        transport = recording_transport(400, {"error_code": "INVALID_MSISDN"})
        connector = MTNMoneyConnector(api_key="k", subscription_key="s",
                                      base_url="https://mtn.test", transport=transport)

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(connector.create_payment(Decimal("1500"), "XOF", "+225051234567", "BS-2"))

        assert exc_info.value.status_code == 400


class TestWave:

    def test_amounts_are_sent_in_hundredths(self):
        calls = []
        transport = recording_transport(body={
            "id": "wave-ch-1", "status": "PROCESSING", "hosted_url": "https://pay.wave.com/c/1"
        }, calls=calls)
        connector = WaveConnector(api_key="w", base_url="https://wave.test", transport=transport)

        result = asyncio.run(connector.create_payment(Decimal("2500"), "XOF", "+221771234567", "BS-3"))

        sent = json.loads(calls[0].content)
        assert calls[0].url.path == "/charges"
        assert sent["amount"] == 250000
        assert sent["currency"] == "xof"
        assert sent["customer"] == {"phone_number": "+221771234567"}
        assert result.provider_reference == "wave-ch-1"
        assert result.status == "processing"
        assert result.payment_url == "https://pay.wave.com/c/1"

    def test_cancel(self):
        calls = []
        transport = recording_transport(body={}, calls=calls)
        connector = WaveConnector(api_key="w", base_url="https://wave.test", transport=transport)

        result = asyncio.run(connector.cancel("wave-ch-1"))

        assert calls[0].url.path == "/charges/wave-ch-1/cancel"
        assert result.status == "cancelled"

    def test_declined_payment_maps_to_402(self):
        transport = recording_transport(402, {"error": {"code": "payment_declined", "message": "Declined"}})
        connector = WaveConnector(api_key="w", base_url="https://wave.test", transport=transport)

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(connector.refund("wave-ch-1", Decimal("100")))

        assert exc_info.value.status_code == 402
        assert exc_info.value.to_dict()["provider"] == "wave"
