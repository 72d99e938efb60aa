"""
Pricing Service - checkout money math

Pure functions, no database access. All amounts are Decimal and rounded
to 2 places with ROUND_HALF_UP.

Author: TM3
Date: 2025-11-05
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from buysell.core.config import settings
from buysell.core.exceptions import BadRequestError
from buysell.domain.order import Coupon

TWO_PLACES = Decimal('0.01')

# Shipping rates per country (XOF)
STANDARD_SHIPPING_RATES = {
    'SN': Decimal('1500'),
    'CI': Decimal('3000'),
    'CM': Decimal('3500'),
    'ML': Decimal('2500'),
    'BF': Decimal('2000'),
    'GN': Decimal('3000'),
    'NE': Decimal('4000'),
    'TG': Decimal('3500'),
    'BJ': Decimal('3000'),
    'FR': Decimal('8000'),
    'US': Decimal('12000'),
}
EXPRESS_SHIPPING_RATES = {
    'SN': Decimal('3000'),
    'CI': Decimal('6000'),
    'CM': Decimal('7000'),
    'ML': Decimal('5000'),
    'BF': Decimal('4000'),
    'GN': Decimal('6000'),
    'NE': Decimal('8000'),
    'TG': Decimal('7000'),
    'BJ': Decimal('6000'),
    'FR': Decimal('15000'),
    'US': Decimal('20000'),
}
DEFAULT_STANDARD_RATE = Decimal('5000')
DEFAULT_EXPRESS_RATE = Decimal('10000')


def money(value) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_subtotal(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    """Sum of unit_price * quantity over (unit_price, quantity) pairs"""
    return money(sum((Decimal(price) * quantity for price, quantity in lines), Decimal('0')))


def calculate_shipping(country: Optional[str], method: str, subtotal: Decimal) -> Decimal:
    """
    Shipping cost for an order

    pickup is free, orders above FREE_SHIPPING_THRESHOLD ship free,
    otherwise the country's standard or express rate applies.
    """
    if method == 'pickup':
        return money(0)

    if subtotal > settings.FREE_SHIPPING_THRESHOLD:
        return money(0)

    country = (country or '').upper()
    if method == 'express':
        return money(EXPRESS_SHIPPING_RATES.get(country, DEFAULT_EXPRESS_RATE))
    return money(STANDARD_SHIPPING_RATES.get(country, DEFAULT_STANDARD_RATE))


def calculate_tax(subtotal: Decimal) -> Decimal:
    return money(Decimal(subtotal) * settings.TAX_RATE)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_coupon(coupon: Coupon, subtotal: Decimal, now: Optional[datetime] = None) -> None:
    """
    Raises:
        BadRequestError: with the reason the coupon cannot be used
    """
    now = now or datetime.now(timezone.utc)

    if not coupon.is_active:
        raise BadRequestError("Coupon is not active")
    if coupon.starts_at and _as_utc(coupon.starts_at) > now:
        raise BadRequestError("Coupon is not valid yet")
    if coupon.expires_at and _as_utc(coupon.expires_at) < now:
        raise BadRequestError("Coupon has expired")
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise BadRequestError("Coupon usage limit reached")
    if coupon.min_order_amount is not None and subtotal < coupon.min_order_amount:
        raise BadRequestError(
            f"Minimum order amount for this coupon is {coupon.min_order_amount}"
        )


def calculate_coupon_discount(coupon: Coupon, subtotal: Decimal, shipping: Decimal,
                              now: Optional[datetime] = None) -> Decimal:
    """
    Discount granted by a coupon

    percentage: subtotal * value / 100, capped by max_discount_amount
    fixed: value, capped at the subtotal
    free_shipping: the shipping cost
    """
    validate_coupon(coupon, subtotal, now)

    if coupon.discount_type == 'percentage':
        discount = Decimal(subtotal) * coupon.discount_value / Decimal('100')
        if coupon.max_discount_amount is not None:
            discount = min(discount, coupon.max_discount_amount)
    elif coupon.discount_type == 'fixed':
        discount = min(coupon.discount_value, Decimal(subtotal))
    elif coupon.discount_type == 'free_shipping':
        discount = Decimal(shipping)
    else:
        raise BadRequestError(f"Unknown discount type: {coupon.discount_type}")

    return money(discount)


def calculate_totals(subtotal: Decimal, country: Optional[str], shipping_method: str,
                     coupon: Optional[Coupon] = None, now: Optional[datetime] = None) -> dict:
    """
    Full price breakdown for a checkout

    Returns:
        {'subtotal', 'shipping_cost', 'tax_amount', 'discount_amount', 'total_amount'}
    """
    subtotal = money(subtotal)
    shipping = calculate_shipping(country, shipping_method, subtotal)
    tax = calculate_tax(subtotal)
    discount = calculate_coupon_discount(coupon, subtotal, shipping, now) if coupon else money(0)

    total = max(subtotal + shipping + tax - discount, Decimal('0'))

    return {
        'subtotal': subtotal,
        'shipping_cost': shipping,
        'tax_amount': tax,
        'discount_amount': discount,
        'total_amount': money(total),
    }
