"""
Notifications API Endpoints
In-app notifications for the current user
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from buysell.core.auth import TokenUser, get_current_user
from buysell.core.constants import MAX_PAGE_SIZE
from buysell.core.exceptions import AppError
from buysell.core.pagination import pagination_meta
from buysell.services.notification_service import NotificationService

router = APIRouter()


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("/")
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    user: TokenUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        notifications, total = service.list_mine(user.id, unread_only, page, limit)
        return {
            "status": "success",
            "data": [notification.to_dict() for notification in notifications],
            "pagination": pagination_meta(page, limit, total)
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching notifications: {str(e)}")


@router.get("/unread-count")
async def unread_count(
    user: TokenUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        return {"status": "success", "data": {"count": service.unread_count(user.id)}}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error counting notifications: {str(e)}")


@router.put("/read-all")
async def mark_all_read(
    user: TokenUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        updated = service.mark_all_read(user.id)
        return {"status": "success", "message": "All notifications marked as read", "data": {"updated": updated}}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating notifications: {str(e)}")


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: TokenUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        service.mark_read(user.id, notification_id)
        return {"status": "success", "message": "Notification marked as read"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating notification: {str(e)}")
