"""
Category Service - category tree management

Author: TM3
Date: 2025-11-05
"""
import logging
from typing import List, Optional, Tuple

from buysell.core.exceptions import BadRequestError, NotFoundError
from buysell.core.pagination import page_offset
from buysell.domain.category import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    build_category_tree,
    slugify,
)
from buysell.domain.product import Product
from buysell.repositories.category_repository import CategoryRepository
from buysell.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class CategoryService:

    def __init__(self, category_repo: CategoryRepository = None, product_repo: ProductRepository = None):
        self.category_repo = category_repo or CategoryRepository()
        self.product_repo = product_repo or ProductRepository()

    def list_categories(self, parent_id: Optional[int] = None, include_children: bool = False) -> List[dict]:
        """Root categories (or children of parent_id), optionally with their direct children"""
        categories = self.category_repo.find_all(parent_id=parent_id)
        result = []
        for category in categories:
            data = category.to_dict()
            if include_children:
                data['children'] = [
                    child.to_dict() for child in self.category_repo.find_all(parent_id=category.id)
                ]
            result.append(data)
        return result

    def get_tree(self) -> List[dict]:
        return build_category_tree(self.category_repo.find_all(roots_only=False))

    def get_category(self, category_id: int) -> Category:
        category = self.category_repo.find_by_id(category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def get_category_by_slug(self, slug: str) -> Category:
        category = self.category_repo.find_by_slug(slug)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def get_category_products(self, category: Category, page: int = 1,
                              limit: int = 20) -> Tuple[List[Product], int]:
        return self.product_repo.find_all(
            category_id=category.id,
            limit=limit,
            offset=page_offset(page, limit)
        )

    def create_category(self, payload: CategoryCreate) -> Category:
        if payload.parent_id is not None and not self.category_repo.find_by_id(payload.parent_id):
            raise NotFoundError("Parent category not found")

        slug = slugify(payload.name)
        if not slug:
            raise BadRequestError("Category name must contain letters or digits")

        category = self.category_repo.create(
            name=payload.name,
            slug=slug,
            description=payload.description,
            image_url=payload.image_url,
            parent_id=payload.parent_id,
            sort_order=payload.sort_order,
        )
        logger.info(f"Category {category.id} '{category.slug}' created")
        return category

    def update_category(self, category_id: int, payload: CategoryUpdate) -> Category:
        if not self.category_repo.find_by_id(category_id, active_only=False):
            raise NotFoundError("Category not found")

        fields = payload.model_dump(exclude_unset=True)

        if 'parent_id' in fields and fields['parent_id'] is not None:
            if fields['parent_id'] == category_id:
                raise BadRequestError("A category cannot be its own parent")
            if not self.category_repo.find_by_id(fields['parent_id']):
                raise NotFoundError("Parent category not found")

        if fields.get('name'):
            slug = slugify(fields['name'])
            if not slug:
                raise BadRequestError("Category name must contain letters or digits")
            fields['slug'] = slug

        return self.category_repo.update(category_id, fields)

    def delete_category(self, category_id: int) -> None:
        """Soft delete; refused while products or active subcategories reference it"""
        if not self.category_repo.find_by_id(category_id):
            raise NotFoundError("Category not found")

        product_count = self.category_repo.count_products(category_id)
        if product_count > 0:
            raise BadRequestError(
                f"Cannot delete category: {product_count} product(s) still use it"
            )

        if self.category_repo.count_subcategories(category_id) > 0:
            raise BadRequestError("Cannot delete category: it has active subcategories")

        self.category_repo.soft_delete(category_id)
        logger.info(f"Category {category_id} deactivated")
