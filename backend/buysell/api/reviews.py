"""
Reviews API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from buysell.core.auth import TokenUser, get_current_user
from buysell.core.constants import MAX_PAGE_SIZE
from buysell.core.exceptions import AppError
from buysell.core.pagination import pagination_meta
from buysell.domain.review import ReviewCreate, ReviewUpdate
from buysell.services.review_service import ReviewService

router = APIRouter()


def get_review_service() -> ReviewService:
    return ReviewService()


@router.get("/product/{product_id}")
async def list_product_reviews(
    product_id: int,
    rating: Optional[int] = Query(None, ge=1, le=5, description="Only reviews with this rating"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    service: ReviewService = Depends(get_review_service)
):
    try:
        result = service.list_for_product(product_id, page, limit, rating)
        return {
            "status": "success",
            "data": {
                "reviews": [review.to_dict() for review in result["reviews"]],
                "statistics": result["statistics"]
            },
            "pagination": pagination_meta(page, limit, result["total"])
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching reviews: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    user: TokenUser = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    try:
        review = service.create_review(user, payload)
        return {"status": "success", "message": "Review submitted", "data": review.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating review: {str(e)}")


@router.put("/{review_id}")
async def update_review(
    review_id: int,
    payload: ReviewUpdate,
    user: TokenUser = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    try:
        review = service.update_review(review_id, user, payload)
        return {"status": "success", "message": "Review updated", "data": review.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating review: {str(e)}")


@router.delete("/{review_id}")
async def delete_review(
    review_id: int,
    user: TokenUser = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    try:
        service.delete_review(review_id, user)
        return {"status": "success", "message": "Review deleted"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting review: {str(e)}")
