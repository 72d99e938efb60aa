"""
Orders API Endpoints
Checkout, order history and cancellation

Author: TM3
Date: 2025-11-06
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from buysell.core.auth import TokenUser, get_current_user, require_seller
from buysell.core.constants import MAX_PAGE_SIZE, ORDER_SORT_FIELDS
from buysell.core.exceptions import AppError
from buysell.core.pagination import pagination_meta
from buysell.domain.order import OrderCancel, OrderCreate
from buysell.services.order_service import OrderService

router = APIRouter()

ORDER_SORT_PATTERN = "^(" + "|".join(ORDER_SORT_FIELDS) + ")$"


def get_order_service() -> OrderService:
    return OrderService()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """
    Checkout

    Uses `items` when given, otherwise the active cart. Stock is reserved
    in the same transaction that creates the order.
    """
    try:
        order = service.create_order(user, payload)
        return {"status": "success", "message": "Order created", "data": order.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating order: {str(e)}")


@router.get("/")
async def list_my_orders(
    status: Optional[str] = Query(None, description="Filter by status"),
    sort_by: str = Query("created_at", pattern=ORDER_SORT_PATTERN),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    try:
        orders, total = service.list_my_orders(user, status, sort_by, sort_order, page, limit)
        return {
            "status": "success",
            "data": [order.to_dict(include_items=False) for order in orders],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/seller")
async def list_seller_orders(
    status: Optional[str] = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    user: TokenUser = Depends(require_seller),
    service: OrderService = Depends(get_order_service)
):
    """Orders that contain at least one of the seller's products"""
    try:
        orders, total = service.seller_orders(user, status, page, limit)
        return {
            "status": "success",
            "data": [order.to_dict() for order in orders],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching seller orders: {str(e)}")


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    try:
        return {"status": "success", "data": service.get_order(order_id, user).to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    payload: Optional[OrderCancel] = Body(None),
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    try:
        reason = payload.reason if payload else None
        order = service.cancel_order(order_id, user, reason)
        return {"status": "success", "message": "Order cancelled", "data": order.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error cancelling order: {str(e)}")
