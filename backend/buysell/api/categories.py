"""
Categories API Endpoints
Category tree browsing and admin management

Author: TM3
Date: 2025-11-06
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from buysell.core.auth import TokenUser, require_admin
from buysell.core.constants import MAX_PAGE_SIZE
from buysell.core.exceptions import AppError
from buysell.core.pagination import pagination_meta
from buysell.domain.category import Category, CategoryCreate, CategoryUpdate
from buysell.services.category_service import CategoryService

router = APIRouter()


def get_category_service() -> CategoryService:
    return CategoryService()


def _category_with_products(service: CategoryService, category: Category, page: int, limit: int) -> dict:
    products, total = service.get_category_products(category, page, limit)
    return {
        "status": "success",
        "data": {
            **category.to_dict(),
            "products": [product.to_dict() for product in products]
        },
        "pagination": pagination_meta(page, limit, total)
    }


@router.get("/")
async def list_categories(
    parent_id: Optional[int] = Query(None, description="Children of this category (roots when omitted)"),
    include_children: bool = Query(False, description="Embed direct subcategories"),
    service: CategoryService = Depends(get_category_service)
):
    try:
        categories = service.list_categories(parent_id, include_children)
        return {"status": "success", "data": categories}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching categories: {str(e)}")


@router.get("/tree")
async def get_category_tree(service: CategoryService = Depends(get_category_service)):
    try:
        return {"status": "success", "data": service.get_tree()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching category tree: {str(e)}")


@router.get("/slug/{slug}")
async def get_category_by_slug(
    slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    service: CategoryService = Depends(get_category_service)
):
    try:
        category = service.get_category_by_slug(slug)
        return _category_with_products(service, category, page, limit)

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching category: {str(e)}")


@router.get("/{category_id}")
async def get_category(
    category_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    service: CategoryService = Depends(get_category_service)
):
    try:
        category = service.get_category(category_id)
        return _category_with_products(service, category, page, limit)

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching category: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    admin: TokenUser = Depends(require_admin),
    service: CategoryService = Depends(get_category_service)
):
    try:
        category = service.create_category(payload)
        return {"status": "success", "message": "Category created", "data": category.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating category: {str(e)}")


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    admin: TokenUser = Depends(require_admin),
    service: CategoryService = Depends(get_category_service)
):
    try:
        category = service.update_category(category_id, payload)
        return {"status": "success", "message": "Category updated", "data": category.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating category: {str(e)}")


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    admin: TokenUser = Depends(require_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Soft delete; refused while products or subcategories still use it"""
    try:
        service.delete_category(category_id)
        return {"status": "success", "message": "Category deleted"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting category: {str(e)}")
