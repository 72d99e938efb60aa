"""
Products API Endpoints
Public catalog, seller listings and image uploads

Author: TM3
Date: 2025-11-06
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from buysell.core.auth import TokenUser, get_current_user_optional, require_seller
from buysell.core.constants import MAX_PAGE_SIZE, PRODUCT_SORT_FIELDS, SELLER_PRODUCT_FILTERS
from buysell.core.exceptions import AppError
from buysell.core.pagination import pagination_meta
from buysell.domain.product import ProductCreate, ProductUpdate
from buysell.services.product_service import ProductService

router = APIRouter()

PRODUCT_SORT_PATTERN = "^(" + "|".join(PRODUCT_SORT_FIELDS) + ")$"
SELLER_FILTER_PATTERN = "^(" + "|".join(SELLER_PRODUCT_FILTERS) + ")$"


def get_product_service() -> ProductService:
    return ProductService()


@router.get("/")
async def list_products(
    search: Optional[str] = Query(None, description="Search in name, description and tags"),
    category_id: Optional[int] = Query(None, description="Filter by category"),
    seller_id: Optional[int] = Query(None, description="Filter by seller"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum price"),
    in_stock: Optional[bool] = Query(None, description="Only products that can be bought now"),
    sort_by: str = Query("created_at", pattern=PRODUCT_SORT_PATTERN),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    service: ProductService = Depends(get_product_service)
):
    """
    Browse published products

    Supports:
    - Full-text-ish search on name, description and tags
    - Category, seller and price range filters
    - Sorting by created_at, price, name or rating
    """
    try:
        products, total = service.list_products(
            page=page,
            limit=limit,
            search=search,
            category_id=category_id,
            seller_id=seller_id,
            min_price=min_price,
            max_price=max_price,
            in_stock=in_stock,
            sort_by=sort_by,
            sort_order=sort_order
        )
        return {
            "status": "success",
            "data": [product.to_dict() for product in products],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.get("/seller/me")
async def list_my_products(
    status: str = Query("all", pattern=SELLER_FILTER_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    user: TokenUser = Depends(require_seller),
    service: ProductService = Depends(get_product_service)
):
    try:
        products, total = service.seller_products(user, status, page, limit)
        return {
            "status": "success",
            "data": [product.to_dict() for product in products],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching seller products: {str(e)}")


@router.get("/{id_or_slug}")
async def get_product(
    id_or_slug: str,
    user: Optional[TokenUser] = Depends(get_current_user_optional),
    service: ProductService = Depends(get_product_service)
):
    try:
        product = service.get_product(id_or_slug, user)
        return {"status": "success", "data": product.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    user: TokenUser = Depends(require_seller),
    service: ProductService = Depends(get_product_service)
):
    try:
        product = service.create_product(user, payload)
        return {"status": "success", "message": "Product created", "data": product.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating product: {str(e)}")


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    user: TokenUser = Depends(require_seller),
    service: ProductService = Depends(get_product_service)
):
    try:
        product = service.update_product(product_id, user, payload)
        return {"status": "success", "message": "Product updated", "data": product.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating product: {str(e)}")


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    user: TokenUser = Depends(require_seller),
    service: ProductService = Depends(get_product_service)
):
    try:
        service.delete_product(product_id, user)
        return {"status": "success", "message": "Product deleted"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting product: {str(e)}")


@router.post("/{product_id}/images", status_code=status.HTTP_201_CREATED)
async def upload_product_image(
    product_id: int,
    file: UploadFile = File(...),
    user: TokenUser = Depends(require_seller),
    service: ProductService = Depends(get_product_service)
):
    try:
        content = await file.read()
        product = service.upload_image(product_id, user, file.filename, content, file.content_type)
        return {"status": "success", "message": "Image uploaded", "data": product.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error uploading image: {str(e)}")
