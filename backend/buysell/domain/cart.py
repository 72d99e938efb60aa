"""
Cart Domain Model

A cart is the set of a user's active cart_items rows; removing a line or
checking out flips is_active instead of deleting.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class CartItem(BaseModel):
    """One cart line joined with the product it points to"""

    id: int
    user_id: int
    product_id: int
    quantity: int = Field(..., ge=1)
    is_active: bool = True

    # Product snapshot (joined)
    product_name: Optional[str] = None
    product_slug: Optional[str] = None
    product_image: Optional[str] = None
    unit_price: Decimal = Decimal("0")
    stock_quantity: int = 0
    track_quantity: bool = True
    is_published: bool = True
    is_available: bool = True
    seller_id: Optional[int] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def is_purchasable(self) -> bool:
        if not (self.is_published and self.is_available):
            return False
        return not self.track_quantity or self.stock_quantity >= self.quantity

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['unit_price'] = float(self.unit_price)
        data['line_total'] = float(self.line_total)
        data['is_purchasable'] = self.is_purchasable
        return data


def summarize_cart(items: List[CartItem]) -> dict:
    """Totals shown next to the cart"""
    subtotal = sum((item.line_total for item in items), Decimal("0"))
    return {
        'items_count': len(items),
        'total_quantity': sum(item.quantity for item in items),
        'subtotal': float(subtotal),
        'has_unavailable_items': any(not item.is_purchasable for item in items),
    }


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=100)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=100)
