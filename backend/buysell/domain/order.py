"""
Order Domain Models

Orders, their line items, coupons and the checkout request schema.

Author: TM3
Date: 2025-11-04
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from buysell.core.constants import (
    CANCELLABLE_STATUSES,
    MAX_ORDER_ITEMS,
    ORDER_PAYMENT_METHODS,
    ORDER_STATUSES,
    SHIPPING_METHODS,
    DISCOUNT_TYPES,
)

MONEY_FIELDS = ('subtotal', 'shipping_cost', 'tax_amount', 'discount_amount', 'total_amount')


class OrderItem(BaseModel):
    """
    Order Item domain model - a line of an order

    Name, SKU, image and price are copied from the product at checkout
    time so the order stays readable after the listing changes.
    """

    id: int = Field(..., description="Order item ID")
    order_id: int = Field(..., description="Parent order ID")
    product_id: Optional[int] = Field(None, description="Product ID")
    seller_id: Optional[int] = Field(None, description="Seller of the product")
    product_name: str = Field(..., description="Product name at order time")
    product_sku: Optional[str] = Field(None, description="Product SKU at order time")
    product_image: Optional[str] = Field(None, description="First product image")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_price: Decimal = Field(..., description="Price per unit", ge=0)
    total_price: Decimal = Field(..., description="unit_price * quantity", ge=0)

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump()
        for field in ['unit_price', 'total_price']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        return data


class Order(BaseModel):
    """
    Order domain model - a customer checkout

    Fields:
        order_number: Human-readable number, BS-{unix_ms}-{RANDOM6}
        status: pending → confirmed → processing → shipped → delivered,
                or cancelled / refunded / payment_failed
        payment_status: pending, paid, failed, refunded, partially_refunded
        payment_method: card, mobile_money, cash_on_delivery

        # Money (all in `currency`)
        subtotal + shipping_cost + tax_amount - discount_amount = total_amount

        shipping_address / billing_address: JSON snapshots of the addresses
        items: Line items (loaded on demand)
    """

    id: int = Field(..., description="Internal order ID")
    order_number: str = Field(..., description="Order number")
    user_id: int = Field(..., description="Customer ID")

    # Status tracking
    status: str = Field("pending", description="Order status")
    payment_status: str = Field("pending", description="Payment status")
    payment_method: Optional[str] = Field(None, description="card, mobile_money, cash_on_delivery")
    shipping_method: str = Field("standard", description="standard, express, pickup")

    # Financial information
    subtotal: Decimal = Field(..., description="Items total", ge=0)
    shipping_cost: Decimal = Field(Decimal('0'), description="Shipping cost", ge=0)
    tax_amount: Decimal = Field(Decimal('0'), description="Tax amount", ge=0)
    discount_amount: Decimal = Field(Decimal('0'), description="Coupon discount", ge=0)
    total_amount: Decimal = Field(..., description="Amount to pay", ge=0)
    currency: str = Field("XOF", description="Currency code")
    items_count: int = Field(0, description="Total units ordered")
    coupon_id: Optional[int] = Field(None, description="Applied coupon")

    # Addresses
    shipping_address: Optional[dict] = Field(None, description="Shipping address snapshot")
    billing_address: Optional[dict] = Field(None, description="Billing address snapshot")

    # Fulfilment
    notes: Optional[str] = Field(None, description="Customer notes")
    admin_notes: Optional[str] = Field(None, description="Internal notes")
    tracking_number: Optional[str] = Field(None, description="Carrier tracking number")
    cancellation_reason: Optional[str] = Field(None, description="Why it was cancelled")

    # Dates
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    status_updated_at: Optional[datetime] = None
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    # Related data (from JOINs - optional)
    customer_email: Optional[str] = Field(None, description="Customer email (from JOIN)")
    customer_name: Optional[str] = Field(None, description="Customer name (from JOIN)")

    items: List[OrderItem] = Field(default_factory=list, description="Order items")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_cancellable(self) -> bool:
        return self.status in CANCELLABLE_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.payment_status == 'paid'

    def is_owned_by(self, user_id: int) -> bool:
        return self.user_id == user_id

    def to_dict(self, include_items: bool = True) -> dict:
        """Convert to dictionary with items and Decimal to float conversion"""
        data = self.model_dump(exclude={'items'})
        for field in MONEY_FIELDS:
            if data.get(field) is not None:
                data[field] = float(data[field])

        data['is_cancellable'] = self.is_cancellable
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data


class OrderItemInput(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1, le=MAX_ORDER_ITEMS)


class OrderCreate(BaseModel):
    """
    Checkout request

    When `items` is omitted the user's active cart is used; an explicit
    empty list is rejected.
    """
    shipping_address_id: int
    billing_address_id: Optional[int] = None
    items: Optional[List[OrderItemInput]] = Field(None, max_length=MAX_ORDER_ITEMS)
    coupon_code: Optional[str] = Field(None, max_length=50)
    payment_method: str = "cash_on_delivery"
    shipping_method: str = "standard"
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("items")
    @classmethod
    def check_items(cls, value: Optional[List[OrderItemInput]]) -> Optional[List[OrderItemInput]]:
        if value is not None and len(value) == 0:
            raise ValueError("Order must contain at least one item")
        return value

    @field_validator("payment_method")
    @classmethod
    def check_payment_method(cls, value: str) -> str:
        if value not in ORDER_PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(ORDER_PAYMENT_METHODS)}")
        return value

    @field_validator("shipping_method")
    @classmethod
    def check_shipping_method(cls, value: str) -> str:
        if value not in SHIPPING_METHODS:
            raise ValueError(f"Shipping method must be one of: {', '.join(SHIPPING_METHODS)}")
        return value


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    """Admin status change - any known status, no transition guard"""
    status: str
    admin_notes: Optional[str] = Field(None, max_length=1000)
    tracking_number: Optional[str] = Field(None, max_length=100)

    @field_validator("status")
    @classmethod
    def check_status(cls, value: str) -> str:
        if value not in ORDER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
        return value


class Coupon(BaseModel):
    """Discount code"""

    id: int
    code: str
    description: Optional[str] = None
    discount_type: str = Field(..., description="percentage, fixed, free_shipping")
    discount_value: Decimal = Field(Decimal('0'), ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = None
    used_count: int = 0
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ('discount_value', 'min_order_amount', 'max_discount_amount'):
            if data.get(field) is not None:
                data[field] = float(data[field])
        return data


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    discount_type: str
    discount_value: Decimal = Field(Decimal('0'), ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("discount_type")
    @classmethod
    def check_discount_type(cls, value: str) -> str:
        if value not in DISCOUNT_TYPES:
            raise ValueError(f"Discount type must be one of: {', '.join(DISCOUNT_TYPES)}")
        return value
