"""
Category Domain Model

Categories form a tree through parent_id. Slugs are derived from names.

Author: TM3
Date: 2025-11-03
"""
import re
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime


def slugify(text: str) -> str:
    """
    URL slug: lowercase, keep [a-z0-9 -], spaces to dashes, collapse dashes

    >>> slugify("Téléphones & Tablettes")
    'tlphones-tablettes'
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^a-z0-9 -]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class Category(BaseModel):
    """Product category"""

    id: int = Field(..., description="Category ID")
    name: str = Field(..., description="Display name")
    slug: str = Field(..., description="URL slug (unique)")
    description: Optional[str] = Field(None, description="Category description")
    image_url: Optional[str] = Field(None, description="Banner image")
    parent_id: Optional[int] = Field(None, description="Parent category (None for roots)")
    sort_order: int = Field(0, description="Ordering among siblings")
    is_active: bool = Field(True, description="Soft-delete flag")
    product_count: Optional[int] = Field(None, description="Published products (when requested)")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['is_root'] = self.is_root
        return data


def build_category_tree(categories: List[Category]) -> List[dict]:
    """
    Nest a flat category list by parent_id.

    Order of the input list is preserved among siblings. Categories whose
    parent is not in the list are treated as roots.
    """
    nodes = {}
    for category in categories:
        node = category.to_dict()
        node['children'] = []
        nodes[category.id] = node

    roots = []
    for category in categories:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id) if category.parent_id is not None else None
        if parent is not None:
            parent['children'].append(node)
        else:
            roots.append(node)

    return roots


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
