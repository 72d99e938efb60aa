"""
Catalog tables: categories, products, cart items
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buysell.core.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    description = Column(Text)
    image_url = Column(String(500))
    parent_id = Column(Integer, ForeignKey("categories.id"), index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("users.id"), index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), index=True)

    name = Column(String(200), nullable=False)
    slug = Column(String(220), nullable=False, unique=True, index=True)
    sku = Column(String(100), unique=True)
    description = Column(Text)
    short_description = Column(String(500))
    images = Column(JSONB, nullable=False, server_default="[]")
    tags = Column(JSONB, nullable=False, server_default="[]")
    weight = Column(DECIMAL(10, 3))

    # Pricing
    price = Column(DECIMAL(12, 2), nullable=False)
    compare_at_price = Column(DECIMAL(12, 2))
    currency = Column(String(3), nullable=False, default="XOF")

    # Inventory
    quantity = Column(Integer, nullable=False, default=0)
    track_quantity = Column(Boolean, nullable=False, default=True)
    low_stock_threshold = Column(Integer, nullable=False, default=5)

    # Visibility
    is_published = Column(Boolean, nullable=False, default=False, index=True)
    is_available = Column(Boolean, nullable=False, default=True, index=True)

    # Stats
    view_count = Column(Integer, nullable=False, default=0)
    rating = Column(DECIMAL(3, 2), nullable=False, default=0)
    review_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    seller = relationship("User", back_populates="products")
    category = relationship("Category", back_populates="products")


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
