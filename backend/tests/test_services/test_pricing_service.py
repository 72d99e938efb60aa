"""
Unit tests for pricing_service

Pure functions: no mocks needed.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from buysell.core.exceptions import BadRequestError
from buysell.domain.order import Coupon
from buysell.services import pricing_service


def _coupon(**overrides) -> Coupon:
    data = {
        "id": 1,
        "code": "WELCOME10",
        "discount_type": "percentage",
        "discount_value": Decimal("10"),
        "is_active": True,
    }
    data.update(overrides)
    return Coupon(**data)


class TestSubtotalAndTax:

    def test_subtotal_sums_lines(self):
        lines = [(Decimal("1500.50"), 2), (Decimal("999.99"), 1)]
        assert pricing_service.calculate_subtotal(lines) == Decimal("4000.99")

    def test_subtotal_of_no_lines_is_zero(self):
        assert pricing_service.calculate_subtotal([]) == Decimal("0.00")

    def test_tax_uses_configured_rate(self):
        # TAX_RATE defaults to 18%
        assert pricing_service.calculate_tax(Decimal("10000")) == Decimal("1800.00")

    def test_money_rounds_half_up(self):
        assert pricing_service.money(Decimal("0.125")) == Decimal("0.13")


class TestShipping:

    @pytest.mark.parametrize("country,method,expected", [
        ("SN", "standard", Decimal("1500")),
        ("CI", "standard", Decimal("3000")),
        ("CI", "express", Decimal("6000")),
        ("US", "express", Decimal("20000")),
        ("DE", "standard", Decimal("5000")),
        ("DE", "express", Decimal("10000")),
    ])
    def test_country_rates(self, country, method, expected):
        assert pricing_service.calculate_shipping(country, method, Decimal("1000")) == expected

    def test_pickup_is_free(self):
        assert pricing_service.calculate_shipping("CI", "pickup", Decimal("1000")) == Decimal("0")

    def test_free_above_threshold(self):
        # FREE_SHIPPING_THRESHOLD defaults to 50000
        assert pricing_service.calculate_shipping("CI", "express", Decimal("50001")) == Decimal("0")

    def test_threshold_itself_is_not_free(self):
        assert pricing_service.calculate_shipping("CI", "standard", Decimal("50000")) == Decimal("3000")

    def test_lowercase_country_is_accepted(self):
        assert pricing_service.calculate_shipping("sn", "standard", Decimal("1000")) == Decimal("1500")


class TestCoupons:

    def test_percentage_discount(self):
        discount = pricing_service.calculate_coupon_discount(_coupon(), Decimal("20000"), Decimal("3000"))
        assert discount == Decimal("2000.00")

    def test_percentage_discount_is_capped(self):
        coupon = _coupon(discount_value=Decimal("50"), max_discount_amount=Decimal("5000"))
        discount = pricing_service.calculate_coupon_discount(coupon, Decimal("20000"), Decimal("0"))
        assert discount == Decimal("5000.00")

    def test_fixed_discount_capped_at_subtotal(self):
        coupon = _coupon(discount_type="fixed", discount_value=Decimal("30000"))
        discount = pricing_service.calculate_coupon_discount(coupon, Decimal("20000"), Decimal("0"))
        assert discount == Decimal("20000.00")

    def test_free_shipping_discount_equals_shipping(self):
        coupon = _coupon(discount_type="free_shipping", discount_value=Decimal("0"))
        discount = pricing_service.calculate_coupon_discount(coupon, Decimal("20000"), Decimal("3000"))
        assert discount == Decimal("3000.00")

    def test_inactive_coupon_rejected(self):
        with pytest.raises(BadRequestError, match="not active"):
            pricing_service.validate_coupon(_coupon(is_active=False), Decimal("20000"))

    def test_expired_coupon_rejected(self):
        now = datetime(2025, 11, 9, tzinfo=timezone.utc)
        coupon = _coupon(expires_at=now - timedelta(days=1))
        with pytest.raises(BadRequestError, match="expired"):
            pricing_service.validate_coupon(coupon, Decimal("20000"), now)

    def test_future_coupon_rejected(self):
        now = datetime(2025, 11, 9, tzinfo=timezone.utc)
        coupon = _coupon(starts_at=now + timedelta(days=1))
        with pytest.raises(BadRequestError, match="not valid yet"):
            pricing_service.validate_coupon(coupon, Decimal("20000"), now)

    def test_naive_dates_are_treated_as_utc(self):
        now = datetime(2025, 11, 9, tzinfo=timezone.utc)
        coupon = _coupon(expires_at=datetime(2025, 11, 10))
        pricing_service.validate_coupon(coupon, Decimal("20000"), now)

    def test_usage_limit_reached(self):
        coupon = _coupon(usage_limit=5, used_count=5)
        with pytest.raises(BadRequestError, match="usage limit"):
            pricing_service.validate_coupon(coupon, Decimal("20000"))

    def test_minimum_order_amount(self):
        coupon = _coupon(min_order_amount=Decimal("25000"))
        with pytest.raises(BadRequestError, match="Minimum order amount"):
            pricing_service.validate_coupon(coupon, Decimal("20000"))


class TestTotals:

    def test_totals_without_coupon(self):
        totals = pricing_service.calculate_totals(Decimal("20000"), "CI", "standard")

        assert totals == {
            "subtotal": Decimal("20000.00"),
            "shipping_cost": Decimal("3000.00"),
            "tax_amount": Decimal("3600.00"),
            "discount_amount": Decimal("0.00"),
            "total_amount": Decimal("26600.00"),
        }

    def test_totals_with_coupon(self):
        totals = pricing_service.calculate_totals(Decimal("20000"), "CI", "standard", _coupon())

        assert totals["discount_amount"] == Decimal("2000.00")
        assert totals["total_amount"] == Decimal("24600.00")

    def test_total_never_negative(self):
        coupon = _coupon(discount_type="fixed", discount_value=Decimal("1000000"))
        totals = pricing_service.calculate_totals(Decimal("100"), "CI", "pickup", coupon)

        # Fixed discounts are capped at the subtotal, so only the tax remains
        assert totals["total_amount"] == Decimal("18.00")
        assert totals["total_amount"] >= 0
