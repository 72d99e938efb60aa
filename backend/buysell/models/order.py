"""
Order tables: coupons, orders, order items
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buysell.core.database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(String(255))
    # percentage, fixed, free_shipping
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(DECIMAL(12, 2), nullable=False, default=0)
    min_order_amount = Column(DECIMAL(12, 2))
    max_discount_amount = Column(DECIMAL(12, 2))
    usage_limit = Column(Integer)
    used_count = Column(Integer, nullable=False, default=0)
    starts_at = Column(DateTime(timezone=True))
    expires_at = Column(DateTime(timezone=True))
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Estados
    status = Column(String(30), nullable=False, default="pending", index=True)
    payment_status = Column(String(30), nullable=False, default="pending", index=True)
    payment_method = Column(String(30))
    shipping_method = Column(String(20), nullable=False, default="standard")

    # Montos
    subtotal = Column(DECIMAL(12, 2), nullable=False)
    shipping_cost = Column(DECIMAL(12, 2), nullable=False, default=0)
    tax_amount = Column(DECIMAL(12, 2), nullable=False, default=0)
    discount_amount = Column(DECIMAL(12, 2), nullable=False, default=0)
    total_amount = Column(DECIMAL(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="XOF")
    items_count = Column(Integer, nullable=False, default=0)
    coupon_id = Column(Integer, ForeignKey("coupons.id"))

    shipping_address = Column(JSONB)
    billing_address = Column(JSONB)

    # Notas
    notes = Column(Text)
    admin_notes = Column(Text)
    tracking_number = Column(String(100))
    cancellation_reason = Column(Text)

    # Fechas
    paid_at = Column(DateTime(timezone=True))
    shipped_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    status_updated_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True)
    seller_id = Column(Integer, ForeignKey("users.id"), index=True)

    # Product data at time of sale
    product_name = Column(String(200), nullable=False)
    product_sku = Column(String(100))
    product_image = Column(String(500))

    quantity = Column(Integer, nullable=False)
    unit_price = Column(DECIMAL(12, 2), nullable=False)
    total_price = Column(DECIMAL(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
