"""
Payment tables: payments, refunds and raw webhook log
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from buysell.core.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # cash, orange_money, mtn_money, wave, stripe
    provider = Column(String(30), nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="XOF")
    status = Column(String(30), nullable=False, default="initiated", index=True)

    provider_reference = Column(String(255), index=True)
    provider_response = Column(JSONB)
    phone_number = Column(String(30))
    payment_url = Column(String(500))
    next_action = Column(String(50))
    failure_message = Column(Text)
    total_refunded = Column(DECIMAL(12, 2), nullable=False, default=0)

    paid_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PaymentRefund(Base):
    __tablename__ = "payment_refunds"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False, index=True)
    amount = Column(DECIMAL(12, 2), nullable=False)
    reason = Column(Text)
    provider_reference = Column(String(255))
    status = Column(String(30), nullable=False, default="succeeded")
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class WebhookLog(Base):
    __tablename__ = "webhook_logs"

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String(30), nullable=False, index=True)
    event_type = Column(String(100))
    event_id = Column(String(255), index=True)
    payload = Column(JSONB)
    processed = Column(Boolean, nullable=False, default=False)
    error = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
