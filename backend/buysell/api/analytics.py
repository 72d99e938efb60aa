"""
Analytics API Endpoints
Sales reports over a rolling period for admins (whole marketplace) and
sellers (their own order lines)

Author: TM3
Date: 2025-11-10
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from buysell.core.auth import TokenUser, require_admin, require_seller
from buysell.core.constants import DEFAULT_ANALYTICS_PERIOD
from buysell.core.exceptions import AppError
from buysell.services.analytics_service import AnalyticsService

router = APIRouter()

PERIOD_PATTERN = "^(7d|30d|90d|1y)$"


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService()


@router.get("")
async def get_platform_analytics(
    period: str = Query(DEFAULT_ANALYTICS_PERIOD, pattern=PERIOD_PATTERN, description="7d, 30d, 90d or 1y"),
    admin: TokenUser = Depends(require_admin),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Marketplace report: revenue and average order value, order counts with
    delivery rate, new and active users, top 10 products, sales by category
    and a daily sales series.
    """
    try:
        return {"status": "success", "data": service.platform_report(period)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error building analytics: {str(e)}")


@router.get("/seller")
async def get_seller_analytics(
    period: str = Query(DEFAULT_ANALYTICS_PERIOD, pattern=PERIOD_PATTERN, description="7d, 30d, 90d or 1y"),
    seller_id: Optional[int] = Query(None, ge=1, description="Admins only: report for this seller"),
    user: TokenUser = Depends(require_seller),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Report for the calling seller; admins may pick any seller with seller_id"""
    try:
        target = seller_id if user.is_admin and seller_id is not None else user.id
        return {"status": "success", "data": service.seller_report(target, period)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error building seller analytics: {str(e)}")
