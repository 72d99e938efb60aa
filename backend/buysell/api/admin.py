"""
Admin API Endpoints
Dashboard, user and seller management, orders, coupons and the audit trail

Every route requires the admin role. Mutations are written to
admin_audit_logs by AdminService.

Author: TM3
Date: 2025-11-08
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from buysell.core.auth import TokenUser, require_admin
from buysell.core.constants import MAX_PAGE_SIZE
from buysell.core.exceptions import AppError
from buysell.core.pagination import pagination_meta
from buysell.domain.order import CouponCreate, OrderStatusUpdate
from buysell.services.admin_service import AdminService

router = APIRouter()


class UserAdminUpdate(BaseModel):
    role: Optional[str] = None
    is_active: Optional[bool] = None


class SellerAction(BaseModel):
    action: str = Field(..., description="approve, reject or suspend")
    reason: Optional[str] = Field(None, max_length=500)


def get_admin_service() -> AdminService:
    return AdminService()


@router.get("/dashboard")
async def get_dashboard(
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        return {"status": "success", "data": service.dashboard()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching dashboard: {str(e)}")


# Users

@router.get("/users")
async def list_users(
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Email or name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        users, total = service.list_users(role, is_active, search, page, limit)
        return {
            "status": "success",
            "data": [user.to_dict() for user in users],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching users: {str(e)}")


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    payload: UserAdminUpdate,
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        user = service.update_user(admin, user_id, payload.role, payload.is_active)
        return {"status": "success", "message": "User updated", "data": user.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating user: {str(e)}")


# Sellers

@router.get("/sellers")
async def list_sellers(
    status: Optional[str] = Query(None, description="pending, approved, rejected or suspended"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        sellers, total = service.list_sellers(status, page, limit)
        return {
            "status": "success",
            "data": [seller.to_dict() for seller in sellers],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching sellers: {str(e)}")


@router.post("/sellers/{user_id}")
async def manage_seller(
    user_id: int,
    payload: SellerAction,
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        seller = service.manage_seller(admin, user_id, payload.action, payload.reason)
        return {"status": "success", "message": f"Seller {payload.action} done", "data": seller.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error managing seller: {str(e)}")


# Orders

@router.get("/orders")
async def list_orders(
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Order number or customer email"),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        orders, total = service.list_orders(
            page=page,
            limit=limit,
            status=status,
            payment_status=payment_status,
            search=search,
            date_from=date_from,
            date_to=date_to
        )
        return {
            "status": "success",
            "data": [order.to_dict(include_items=False) for order in orders],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.put("/orders/{order_id}/status")
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        order = service.update_order_status(admin, order_id, payload)
        return {"status": "success", "message": "Order status updated", "data": order.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating order status: {str(e)}")


# Coupons

@router.get("/coupons")
async def list_coupons(
    active_only: bool = Query(False),
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        coupons = service.list_coupons(active_only)
        return {"status": "success", "data": [coupon.to_dict() for coupon in coupons]}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching coupons: {str(e)}")


@router.post("/coupons", status_code=status.HTTP_201_CREATED)
async def create_coupon(
    payload: CouponCreate,
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        coupon = service.create_coupon(admin, payload)
        return {"status": "success", "message": "Coupon created", "data": coupon.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating coupon: {str(e)}")


# Audit trail

@router.get("/audit-logs")
async def list_audit_logs(
    action: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    admin: TokenUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    try:
        logs, total = service.audit_logs(action, page, limit)
        return {
            "status": "success",
            "data": logs,
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching audit logs: {str(e)}")
