"""
Payment Domain Models

One order can have several payment attempts; each attempt is a row in
payments, and refunds are recorded against the attempt that succeeded.

Author: TM3
Date: 2025-11-06
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, Any, Dict
from datetime import datetime
from decimal import Decimal

from buysell.core.constants import (
    FINAL_PAYMENT_STATUSES,
    PAYMENT_PROVIDERS,
    REFUNDABLE_PAYMENT_STATUSES,
)


class Payment(BaseModel):
    """
    Payment attempt

    Fields:
        provider: cash, orange_money, mtn_money, wave, stripe
        status: initiated → pending/processing/pending_cash → succeeded/failed/cancelled,
                then partially_refunded / fully_refunded / refunded
        provider_reference: Transaction / charge / payment intent ID at the provider
        next_action: What the client should do next (verify_otp, redirect, ...)
        total_refunded: Sum of refunds recorded so far
    """

    id: int = Field(..., description="Payment ID")
    order_id: int = Field(..., description="Order being paid")
    user_id: int = Field(..., description="Payer")
    provider: str = Field(..., description="Payment provider")
    amount: Decimal = Field(..., description="Amount charged", ge=0)
    currency: str = Field("XOF", description="Currency code")
    status: str = Field("initiated", description="Payment status")
    provider_reference: Optional[str] = Field(None, description="Provider transaction ID")
    provider_response: Optional[Dict[str, Any]] = Field(None, description="Last raw provider payload")
    phone_number: Optional[str] = Field(None, description="Mobile money number")
    payment_url: Optional[str] = Field(None, description="Hosted payment page")
    next_action: Optional[str] = Field(None, description="Client next step")
    failure_message: Optional[str] = Field(None, description="Why the payment failed")
    total_refunded: Decimal = Field(Decimal('0'), description="Refunded so far", ge=0)
    paid_at: Optional[datetime] = None
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_PAYMENT_STATUSES

    @property
    def refundable_amount(self) -> Decimal:
        return max(self.amount - self.total_refunded, Decimal('0'))

    @property
    def can_refund(self) -> bool:
        return (
            self.status in REFUNDABLE_PAYMENT_STATUSES
            and self.status != 'fully_refunded'
            and self.total_refunded < self.amount
        )

    def to_dict(self) -> dict:
        data = self.model_dump(exclude={'provider_response'})
        data['amount'] = float(self.amount)
        data['total_refunded'] = float(self.total_refunded)
        data['is_final'] = self.is_final
        data['can_refund'] = self.can_refund
        return data


class PaymentRefund(BaseModel):
    id: int
    payment_id: int
    amount: Decimal = Field(..., ge=0)
    reason: Optional[str] = None
    provider_reference: Optional[str] = None
    status: str = "succeeded"
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['amount'] = float(self.amount)
        return data


class PaymentIntentCreate(BaseModel):
    order_id: int
    payment_method: str = Field(..., description="cash, orange_money, mtn_money, wave, stripe")
    phone_number: Optional[str] = Field(None, max_length=30)
    payment_method_id: Optional[str] = Field(None, description="Stripe PaymentMethod ID")

    @field_validator("payment_method")
    @classmethod
    def check_provider(cls, value: str) -> str:
        if value not in PAYMENT_PROVIDERS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_PROVIDERS)}")
        return value


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=500)


class ProviderResult(BaseModel):
    """Normalized answer from a payment connector"""
    provider_reference: Optional[str] = None
    status: str
    payment_url: Optional[str] = None
    next_action: Optional[str] = None
    instructions: Optional[str] = None
    failure_message: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)
