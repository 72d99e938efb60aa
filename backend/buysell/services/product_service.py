"""
Product Service - seller listings and the public catalog

Author: TM3
Date: 2025-11-05
"""
import logging
from typing import List, Optional, Tuple

from buysell.core.auth import TokenUser
from buysell.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from buysell.core.pagination import page_offset
from buysell.domain.category import slugify
from buysell.domain.product import Product, ProductCreate, ProductUpdate, PRODUCT_UPDATABLE_FIELDS
from buysell.repositories.category_repository import CategoryRepository
from buysell.repositories.product_repository import ProductRepository
from buysell.services.storage_service import StorageService

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic for products

    Handles:
    - Catalog listing with filters and sorting
    - Draft/published visibility rules
    - Owner-or-admin mutations
    - Image uploads to storage
    """

    def __init__(self, product_repo: ProductRepository = None, category_repo: CategoryRepository = None,
                 storage_service: StorageService = None):
        self.product_repo = product_repo or ProductRepository()
        self.category_repo = category_repo or CategoryRepository()
        self.storage = storage_service or StorageService()

    def list_products(self, page: int = 1, limit: int = 20, **filters) -> Tuple[List[Product], int]:
        return self.product_repo.find_all(limit=limit, offset=page_offset(page, limit), **filters)

    @staticmethod
    def _can_manage(product: Product, user: Optional[TokenUser]) -> bool:
        return user is not None and (user.is_admin or product.seller_id == user.id)

    def get_product(self, id_or_slug: str, user: Optional[TokenUser] = None) -> Product:
        """
        Product by numeric ID or slug

        Drafts and withdrawn listings are only visible to their seller or an
        admin. Every public view bumps view_count.
        """
        if str(id_or_slug).isdigit():
            product = self.product_repo.find_by_id(int(id_or_slug))
        else:
            product = self.product_repo.find_by_slug(id_or_slug)

        if not product:
            raise NotFoundError("Product not found")

        visible = product.is_published and product.is_available
        if not visible and not self._can_manage(product, user):
            raise NotFoundError("Product not found")

        if visible:
            self.product_repo.increment_view_count(product.id)

        return product

    def _get_managed_product(self, product_id: int, user: TokenUser) -> Product:
        product = self.product_repo.find_by_id(product_id)
        if not product:
            raise NotFoundError("Product not found")
        if not self._can_manage(product, user):
            raise ForbiddenError("You can only manage your own products")
        return product

    def create_product(self, user: TokenUser, payload: ProductCreate) -> Product:
        if not self.category_repo.find_by_id(payload.category_id):
            raise NotFoundError("Category not found")

        slug = slugify(payload.name)
        if not slug:
            raise BadRequestError("Product name must contain letters or digits")
        if self.product_repo.slug_exists(slug):
            raise ConflictError(f"A product with slug '{slug}' already exists")

        product = self.product_repo.create(user.id, slug, payload.model_dump())
        logger.info(f"Product {product.id} created by seller {user.id}")
        return product

    def update_product(self, product_id: int, user: TokenUser, payload: ProductUpdate) -> Product:
        self._get_managed_product(product_id, user)

        fields = {
            key: value for key, value in payload.model_dump(exclude_unset=True).items()
            if key in PRODUCT_UPDATABLE_FIELDS
        }

        if 'category_id' in fields and not self.category_repo.find_by_id(fields['category_id']):
            raise NotFoundError("Category not found")

        if fields.get('name'):
            slug = slugify(fields['name'])
            if not slug:
                raise BadRequestError("Product name must contain letters or digits")
            if self.product_repo.slug_exists(slug, exclude_id=product_id):
                raise ConflictError(f"A product with slug '{slug}' already exists")
            fields['slug'] = slug

        return self.product_repo.update(product_id, fields)

    def delete_product(self, product_id: int, user: TokenUser) -> None:
        self._get_managed_product(product_id, user)
        self.product_repo.soft_delete(product_id)
        logger.info(f"Product {product_id} withdrawn by user {user.id}")

    def seller_products(self, user: TokenUser, status: str = 'all', page: int = 1,
                        limit: int = 20) -> Tuple[List[Product], int]:
        return self.product_repo.find_by_seller(user.id, status, limit, page_offset(page, limit))

    def upload_image(self, product_id: int, user: TokenUser, filename: Optional[str],
                     content: bytes, content_type: str) -> Product:
        self._get_managed_product(product_id, user)
        url = self.storage.upload_product_image(product_id, filename, content, content_type)
        return self.product_repo.append_image(product_id, url)
