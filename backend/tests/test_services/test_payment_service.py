"""
Unit tests for PaymentService

Connectors are AsyncMocks so no provider is contacted; coroutines are
driven with asyncio.run.
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from buysell.core.exceptions import BadRequestError, ForbiddenError, PaymentProviderError
from buysell.domain.payment import PaymentIntentCreate, PaymentRefund, ProviderResult, RefundRequest
from buysell.services.payment_service import PaymentService, available_payment_methods


@pytest.fixture
def repos():
    return {
        "payment_repo": MagicMock(),
        "order_repo": MagicMock(),
        "notification_service": MagicMock(),
    }


@pytest.fixture
def connector():
    fake = MagicMock()
    fake.create_payment = AsyncMock()
    fake.get_status = AsyncMock()
    fake.refund = AsyncMock()
    return fake


@pytest.fixture
def service(repos, connector):
    return PaymentService(
        **repos,
        connectors={"orange_money": connector, "mtn_money": connector, "wave": connector, "stripe": connector},
    )


class TestAvailableMethods:

    def test_ivory_coast_small_amount(self):
        result = available_payment_methods("CI", Decimal("5000"))

        methods = [m["method"] for m in result["methods"]]
        assert methods == ["cash", "mtn_money", "orange_money", "wave", "stripe"]
        assert result["default_method"] == "cash"

    def test_mtn_is_ivory_coast_only(self):
        methods = [m["method"] for m in available_payment_methods("SN", Decimal("5000"))["methods"]]

        assert "mtn_money" not in methods
        assert "orange_money" in methods
        assert "wave" in methods

    def test_amount_above_mobile_money_limit(self):
        methods = [m["method"] for m in available_payment_methods("CI", Decimal("800000"))["methods"]]

        assert "orange_money" not in methods
        assert "mtn_money" not in methods
        assert "wave" in methods

    def test_france_defaults_to_stripe(self):
        result = available_payment_methods("FR", Decimal("5000"), "EUR")

        assert result["default_method"] == "stripe"

    def test_unsupported_currency_has_no_stripe(self):
        methods = [m["method"] for m in available_payment_methods("US", Decimal("5000"), "GBP")["methods"]]

        assert methods == ["cash"]


class TestCreateIntent:

    def test_cash_payment_is_recorded_without_provider(self, service, repos, connector, customer, make_order, make_payment):
        # Arrange
        repos["order_repo"].find_by_id.return_value = make_order()
        repos["payment_repo"].find_in_flight.return_value = None
        repos["payment_repo"].create.return_value = make_payment(provider="cash", status="initiated")
        repos["payment_repo"].update.return_value = make_payment(
            provider="cash", status="pending_cash", provider_reference="CASH_700", next_action="wait_for_delivery"
        )

        # Act
        result = asyncio.run(service.create_intent(customer, PaymentIntentCreate(order_id=500, payment_method="cash")))

        # Assert
        connector.create_payment.assert_not_called()
        update_kwargs = repos["payment_repo"].update.call_args[1]
        assert update_kwargs["status"] == "pending_cash"
        assert update_kwargs["provider_reference"] == "CASH_700"
        assert update_kwargs["next_action"] == "wait_for_delivery"
        repos["order_repo"].update_payment.assert_called_once_with(
            500, payment_status="pending", payment_method="cash_on_delivery"
        )
        assert result["payment"]["status"] == "pending_cash"

    def test_mobile_money_calls_connector(self, service, repos, connector, customer, make_order, make_payment):
        repos["order_repo"].find_by_id.return_value = make_order()
        repos["payment_repo"].find_in_flight.return_value = None
        repos["payment_repo"].create.return_value = make_payment(status="initiated", provider_reference=None)
        repos["payment_repo"].update.return_value = make_payment(status="pending")
        connector.create_payment.return_value = ProviderResult(
            provider_reference="OM-TX-1", status="pending", next_action="redirect_or_otp",
            payment_url="https://pay.example/om", raw={"transaction_id": "OM-TX-1"},
        )

        asyncio.run(service.create_intent(
            customer,
            PaymentIntentCreate(order_id=500, payment_method="orange_money", phone_number="0712345678"),
        ))

        assert connector.create_payment.call_args[1]["phone_number"] == "0712345678"
        assert connector.create_payment.call_args[1]["amount"] == Decimal("26600")
        assert repos["payment_repo"].update.call_args[1]["provider_reference"] == "OM-TX-1"
        assert repos["order_repo"].update_payment.call_args[1]["payment_method"] == "mobile_money"

    def test_in_flight_payment_is_reused(self, service, repos, connector, customer, make_order, make_payment):
        repos["order_repo"].find_by_id.return_value = make_order()
        repos["payment_repo"].find_in_flight.return_value = make_payment()

        result = asyncio.run(service.create_intent(
            customer,
            PaymentIntentCreate(order_id=500, payment_method="orange_money", phone_number="0712345678"),
        ))

        assert result["payment"]["id"] == 700
        repos["payment_repo"].create.assert_not_called()
        connector.create_payment.assert_not_called()

    def test_paid_order_rejected(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order(payment_status="paid")

        with pytest.raises(BadRequestError, match="not awaiting payment"):
            asyncio.run(service.create_intent(customer, PaymentIntentCreate(order_id=500, payment_method="cash")))

    def test_amount_below_minimum(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order(total_amount=Decimal("50"))

        with pytest.raises(BadRequestError, match="Minimum payment amount"):
            asyncio.run(service.create_intent(customer, PaymentIntentCreate(order_id=500, payment_method="cash")))

    def test_mobile_money_requires_phone(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order()

        with pytest.raises(BadRequestError, match="Phone number"):
            asyncio.run(service.create_intent(customer, PaymentIntentCreate(order_id=500, payment_method="wave")))

    def test_stripe_requires_payment_method_id(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order()

        with pytest.raises(BadRequestError, match="payment_method_id"):
            asyncio.run(service.create_intent(customer, PaymentIntentCreate(order_id=500, payment_method="stripe")))

    def test_someone_elses_order_forbidden(self, service, repos, customer, make_order):
        repos["order_repo"].find_by_id.return_value = make_order(user_id=42)

        with pytest.raises(ForbiddenError):
            asyncio.run(service.create_intent(customer, PaymentIntentCreate(order_id=500, payment_method="cash")))

    def test_provider_error_marks_payment_failed(self, service, repos, connector, customer, make_order, make_payment):
        repos["order_repo"].find_by_id.return_value = make_order()
        repos["payment_repo"].find_in_flight.return_value = None
        repos["payment_repo"].create.return_value = make_payment(status="initiated", provider_reference=None)
        connector.create_payment.side_effect = PaymentProviderError("Orange Money is unreachable", "orange_money")

        with pytest.raises(PaymentProviderError) as exc_info:
            asyncio.run(service.create_intent(
                customer,
                PaymentIntentCreate(order_id=500, payment_method="orange_money", phone_number="0712345678"),
            ))

        assert exc_info.value.status_code == 502
        repos["payment_repo"].update.assert_called_once_with(
            700, status="failed", failure_message="Orange Money is unreachable"
        )


class TestStatusAndEffects:

    def test_final_payment_is_not_polled(self, service, repos, connector, customer, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(status="succeeded")

        payment = asyncio.run(service.get_status(700, customer))

        assert payment.status == "succeeded"
        connector.get_status.assert_not_called()

    def test_polling_success_applies_effects(self, service, repos, connector, customer, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(status="pending")
        repos["payment_repo"].update.return_value = make_payment(status="succeeded")
        connector.get_status.return_value = ProviderResult(provider_reference="OM-TX-1", status="succeeded")

        payment = asyncio.run(service.get_status(700, customer))

        assert payment.status == "succeeded"
        repos["order_repo"].update_payment.assert_called_once_with(500, payment_status="paid", mark_paid=True)
        assert repos["notification_service"].notify.call_args[0][1] == "PAYMENT_SUCCESS"

    def test_success_is_idempotent(self, service, repos, make_payment):
        payment = make_payment(status="succeeded")

        assert service.apply_success(payment) is payment
        repos["payment_repo"].update.assert_not_called()
        repos["notification_service"].notify.assert_not_called()

    def test_failure_effects(self, service, repos, make_payment):
        repos["payment_repo"].update.return_value = make_payment(status="failed")

        service.apply_failure(make_payment(), "Insufficient balance")

        repos["order_repo"].update_payment.assert_called_once_with(500, payment_status="failed")
        assert repos["notification_service"].notify.call_args[0][1] == "PAYMENT_FAILED"

    def test_intermediate_status_only_updates_payment(self, service, repos, make_payment):
        service.apply_provider_status(make_payment(status="pending"), "processing")

        repos["payment_repo"].update.assert_called_once_with(700, status="processing", provider_response=None)
        repos["order_repo"].update_payment.assert_not_called()


class TestProviderReportedRefund:

    def test_partial_stripe_refund_keeps_payment_refundable(self, service, repos, make_payment):
        # Arrange
        payment = make_payment(provider="stripe", status="succeeded", provider_reference="pi_123")
        repos["payment_repo"].sync_provider_refund.return_value = (
            make_payment(provider="stripe", status="partially_refunded", total_refunded=Decimal("5000")),
            Decimal("5000"),
        )
        charge = {"payment_intent": "pi_123", "amount": 26600, "amount_refunded": 5000, "currency": "xof"}

        # Act
        updated = service.apply_refunded(payment, charge)

        # Assert
        repos["payment_repo"].sync_provider_refund.assert_called_once_with(700, Decimal("5000"), charge)
        repos["order_repo"].sync_refund_status.assert_called_once_with(700)
        repos["order_repo"].update_payment.assert_not_called()
        assert updated.status == "partially_refunded"
        assert updated.can_refund is True

    def test_stripe_cents_are_converted_back(self, service, repos, make_payment):
        payment = make_payment(provider="stripe", currency="EUR", amount=Decimal("120.00"), status="succeeded")
        repos["payment_repo"].sync_provider_refund.return_value = (payment, Decimal("0"))

        service.apply_refunded(payment, {"amount": 12000, "amount_refunded": 2550, "currency": "eur"})

        assert repos["payment_repo"].sync_provider_refund.call_args[0][1] == Decimal("25.50")

    def test_fully_refunded_charge_covers_whole_payment(self, service, repos, make_payment):
        payment = make_payment(provider="stripe", status="partially_refunded", total_refunded=Decimal("5000"))
        repos["payment_repo"].sync_provider_refund.return_value = (
            make_payment(provider="stripe", status="fully_refunded", total_refunded=Decimal("26600")),
            Decimal("21600"),
        )

        service.apply_refunded(payment, {"amount": 26600, "amount_refunded": 26600, "currency": "xof"})

        assert repos["payment_repo"].sync_provider_refund.call_args[0][1] == Decimal("26600")

    def test_mobile_money_refund_status_means_whole_amount(self, service, repos, make_payment):
        payment = make_payment(status="succeeded")
        repos["payment_repo"].sync_provider_refund.return_value = (
            make_payment(status="fully_refunded", total_refunded=Decimal("26600")), Decimal("26600")
        )

        service.apply_provider_status(payment, "refunded", {"status": "REFUNDED"})

        assert repos["payment_repo"].sync_provider_refund.call_args[0][1] == Decimal("26600")
        repos["order_repo"].sync_refund_status.assert_called_once_with(700)


class TestRefund:

    def test_partial_refund(self, service, repos, connector, admin, make_payment):
        # Arrange
        repos["payment_repo"].find_by_id.return_value = make_payment(status="succeeded")
        repos["payment_repo"].reserve_refund.return_value = (
            PaymentRefund(id=1, payment_id=700, amount=Decimal("10000"), status="pending"),
            "partially_refunded",
        )
        repos["payment_repo"].complete_refund.return_value = PaymentRefund(
            id=1, payment_id=700, amount=Decimal("10000"), provider_reference="RF-1", status="succeeded"
        )
        connector.refund.return_value = ProviderResult(provider_reference="RF-1", status="succeeded")

        # Act
        result = asyncio.run(service.refund(700, admin, RefundRequest(amount=Decimal("10000"), reason="Damaged")))

        # Assert
        repos["payment_repo"].reserve_refund.assert_called_once_with(700, Decimal("10000"), "Damaged", 99)
        connector.refund.assert_awaited_once_with("OM-TX-1", Decimal("10000"), "Damaged")
        repos["payment_repo"].complete_refund.assert_called_once_with(1, "RF-1")
        repos["order_repo"].sync_refund_status.assert_called_once_with(700)
        assert result["refund"]["amount"] == 10000.0
        assert result["refund"]["status"] == "succeeded"

    def test_amount_is_reserved_before_provider_call(self, service, repos, connector, admin, make_payment):
        calls = []
        repos["payment_repo"].find_by_id.return_value = make_payment(status="succeeded")
        repos["payment_repo"].reserve_refund.side_effect = lambda *args: calls.append("reserve") or (
            PaymentRefund(id=1, payment_id=700, amount=Decimal("26600"), status="pending"), "fully_refunded"
        )
        connector.refund.side_effect = lambda *args: calls.append("provider") or ProviderResult(
            provider_reference="RF-1", status="succeeded"
        )
        repos["payment_repo"].complete_refund.return_value = PaymentRefund(id=1, payment_id=700, amount=Decimal("26600"))

        asyncio.run(service.refund(700, admin, RefundRequest()))

        assert calls == ["reserve", "provider"]

    def test_provider_refusal_releases_reservation(self, service, repos, connector, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(status="succeeded")
        repos["payment_repo"].reserve_refund.return_value = (
            PaymentRefund(id=5, payment_id=700, amount=Decimal("26600"), status="pending"), "fully_refunded"
        )
        connector.refund.side_effect = PaymentProviderError("Refund rejected", provider="orange_money")

        with pytest.raises(PaymentProviderError):
            asyncio.run(service.refund(700, admin, RefundRequest()))

        repos["payment_repo"].release_refund.assert_called_once_with(5, 700, Decimal("26600"))
        repos["payment_repo"].complete_refund.assert_not_called()
        repos["order_repo"].sync_refund_status.assert_not_called()
        repos["notification_service"].notify.assert_not_called()

    def test_lost_race_is_rejected_before_provider_call(self, service, repos, connector, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(status="succeeded")
        repos["payment_repo"].reserve_refund.side_effect = BadRequestError(
            "Refund exceeds the remaining refundable amount"
        )

        with pytest.raises(BadRequestError, match="remaining refundable"):
            asyncio.run(service.refund(700, admin, RefundRequest()))

        connector.refund.assert_not_called()

    def test_full_refund_defaults_to_remainder(self, service, repos, connector, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(
            status="partially_refunded", total_refunded=Decimal("6600")
        )
        repos["payment_repo"].reserve_refund.return_value = (
            PaymentRefund(id=2, payment_id=700, amount=Decimal("20000"), status="pending"), "fully_refunded"
        )
        repos["payment_repo"].complete_refund.return_value = PaymentRefund(id=2, payment_id=700, amount=Decimal("20000"))
        connector.refund.return_value = ProviderResult(provider_reference="RF-2", status="succeeded")

        asyncio.run(service.refund(700, admin, RefundRequest()))

        assert repos["payment_repo"].reserve_refund.call_args[0][1] == Decimal("20000")

    def test_stripe_refund_passes_currency(self, service, repos, connector, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(
            provider="stripe", status="succeeded", provider_reference="pi_123"
        )
        repos["payment_repo"].reserve_refund.return_value = (
            PaymentRefund(id=3, payment_id=700, amount=Decimal("26600"), status="pending"), "fully_refunded"
        )
        repos["payment_repo"].complete_refund.return_value = PaymentRefund(id=3, payment_id=700, amount=Decimal("26600"))
        connector.refund.return_value = ProviderResult(provider_reference="re_1", status="refunded")

        asyncio.run(service.refund(700, admin, RefundRequest()))

        connector.refund.assert_awaited_once_with("pi_123", Decimal("26600"), "XOF", "Refund request")

    def test_cash_refund_is_recorded_only(self, service, repos, connector, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(provider="cash", status="succeeded")
        repos["payment_repo"].reserve_refund.return_value = (
            PaymentRefund(id=4, payment_id=700, amount=Decimal("26600"), status="pending"), "fully_refunded"
        )
        repos["payment_repo"].complete_refund.return_value = PaymentRefund(id=4, payment_id=700, amount=Decimal("26600"))

        asyncio.run(service.refund(700, admin, RefundRequest()))

        connector.refund.assert_not_called()
        repos["payment_repo"].complete_refund.assert_called_once_with(4, None)

    def test_amount_above_remaining_rejected(self, service, repos, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(status="succeeded")

        with pytest.raises(BadRequestError, match="exceeds"):
            asyncio.run(service.refund(700, admin, RefundRequest(amount=Decimal("30000"))))

        repos["payment_repo"].reserve_refund.assert_not_called()

    def test_pending_payment_cannot_be_refunded(self, service, repos, admin, make_payment):
        repos["payment_repo"].find_by_id.return_value = make_payment(status="pending")

        with pytest.raises(BadRequestError, match="cannot be refunded"):
            asyncio.run(service.refund(700, admin, RefundRequest()))
