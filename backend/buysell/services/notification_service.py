"""
Notification Service - in-app notifications

Notifications are a side effect of other operations (checkout, payment,
admin actions); a failure to write one is logged and never aborts the
operation that triggered it.
"""
import logging
from typing import Optional

from buysell.core.exceptions import NotFoundError
from buysell.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, notification_repo: NotificationRepository = None):
        self.notification_repo = notification_repo or NotificationRepository()

    def notify(self, user_id: int, type: str, title: str, message: str,
               data: Optional[dict] = None) -> None:
        try:
            self.notification_repo.create(user_id, type, title, message, data)
        except Exception as e:
            logger.warning(f"Could not store {type} notification for user {user_id}: {str(e)}")

    def list_mine(self, user_id: int, unread_only: bool = False, page: int = 1, limit: int = 20):
        offset = (page - 1) * limit
        return self.notification_repo.find_by_user(user_id, unread_only, limit, offset)

    def unread_count(self, user_id: int) -> int:
        return self.notification_repo.count_unread(user_id)

    def mark_read(self, user_id: int, notification_id: int) -> None:
        if not self.notification_repo.mark_read(notification_id, user_id):
            raise NotFoundError("Notification not found")

    def mark_all_read(self, user_id: int) -> int:
        return self.notification_repo.mark_all_read(user_id)
