"""
Product Domain Model

Represents a listing published by a seller on the marketplace.
This is the single source of truth for product data structure.

Author: TM3
Date: 2025-11-03
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class Product(BaseModel):
    """
    Product domain model - a listing in the marketplace catalog

    Fields:
        id: Internal product ID (primary key)
        seller_id: User who owns the listing
        category_id: Category the listing belongs to
        name / slug / sku: Identification (slug and sku are unique)

        # Pricing
        price: Selling price
        compare_at_price: Crossed-out "was" price (optional)
        currency: ISO currency (XOF by default)

        # Inventory
        quantity: Units in stock
        track_quantity: When False, stock is never checked nor decremented
        low_stock_threshold: Seller gets an alert at or below this level

        # Visibility
        is_published: Seller published it (False means draft)
        is_available: Not withdrawn (soft delete sets both flags to False)
    """

    # Identification
    id: int = Field(..., description="Internal product ID")
    seller_id: Optional[int] = Field(None, description="Owning seller")
    category_id: Optional[int] = Field(None, description="Category ID")
    name: str = Field(..., description="Product name")
    slug: str = Field(..., description="URL slug")
    sku: Optional[str] = Field(None, description="Stock Keeping Unit")

    # Details
    description: Optional[str] = Field(None, description="Long description")
    short_description: Optional[str] = Field(None, description="Teaser text")
    images: List[str] = Field(default_factory=list, description="Image URLs")
    tags: List[str] = Field(default_factory=list, description="Search tags")
    weight: Optional[Decimal] = Field(None, description="Weight in kg", ge=0)

    # Pricing
    price: Decimal = Field(..., description="Sale price", ge=0)
    compare_at_price: Optional[Decimal] = Field(None, description="Previous price", ge=0)
    currency: str = Field("XOF", description="Currency code")

    # Inventory
    quantity: int = Field(0, description="Units in stock")
    track_quantity: bool = Field(True, description="Whether stock is enforced")
    low_stock_threshold: int = Field(5, description="Low stock alert level", ge=0)

    # Visibility
    is_published: bool = Field(False, description="Published (False = draft)")
    is_available: bool = Field(True, description="Available for sale")

    # Stats
    view_count: int = Field(0, description="Detail page views")
    rating: Decimal = Field(Decimal("0"), description="Average review rating")
    review_count: int = Field(0, description="Approved reviews")

    # Joined fields (optional)
    category_name: Optional[str] = Field(None, description="Category name (joined)")
    seller_name: Optional[str] = Field(None, description="Seller store name (joined)")

    # Metadata
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_in_stock(self) -> bool:
        return not self.track_quantity or self.quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return self.track_quantity and self.quantity <= self.low_stock_threshold

    @property
    def is_purchasable(self) -> bool:
        """Published, not withdrawn and in stock"""
        return self.is_published and self.is_available and self.is_in_stock

    @property
    def discount_percentage(self) -> Optional[int]:
        if self.compare_at_price and self.compare_at_price > self.price:
            return int(round((1 - self.price / self.compare_at_price) * 100))
        return None

    def has_stock_for(self, quantity: int) -> bool:
        return not self.track_quantity or self.quantity >= quantity

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns dict with all fields plus computed properties
        """
        data = self.model_dump()

        data['is_in_stock'] = self.is_in_stock
        data['is_low_stock'] = self.is_low_stock
        data['discount_percentage'] = self.discount_percentage

        # Convert Decimal to float for JSON compatibility
        for key in ('price', 'compare_at_price', 'weight', 'rating'):
            if data.get(key) is not None:
                data[key] = float(data[key])

        return data


class ProductCreate(BaseModel):
    """Schema for creating a new product"""
    name: str = Field(..., min_length=2, max_length=200)
    price: Decimal = Field(..., gt=0)
    category_id: int
    description: Optional[str] = Field(None, max_length=10000)
    short_description: Optional[str] = Field(None, max_length=500)
    compare_at_price: Optional[Decimal] = Field(None, gt=0)
    sku: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(0, ge=0)
    track_quantity: bool = True
    low_stock_threshold: int = Field(5, ge=0)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    weight: Optional[Decimal] = Field(None, ge=0)
    is_published: bool = False


class ProductUpdate(BaseModel):
    """Schema for updating an existing product (owner or admin)"""
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    price: Optional[Decimal] = Field(None, gt=0)
    category_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=10000)
    short_description: Optional[str] = Field(None, max_length=500)
    compare_at_price: Optional[Decimal] = Field(None, gt=0)
    sku: Optional[str] = Field(None, max_length=100)
    quantity: Optional[int] = Field(None, ge=0)
    track_quantity: Optional[bool] = None
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    weight: Optional[Decimal] = Field(None, ge=0)
    is_published: Optional[bool] = None
    is_available: Optional[bool] = None


# Columns a seller may change through ProductUpdate
PRODUCT_UPDATABLE_FIELDS = tuple(ProductUpdate.model_fields.keys())
