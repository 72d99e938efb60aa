"""
Admin Service - marketplace administration

Every mutation is written to admin_audit_logs.

Author: TM3
Date: 2025-11-07
"""
import logging
from typing import List, Optional, Tuple

from buysell.core.auth import TokenUser
from buysell.core.constants import SELLER_ACTIONS, USER_ROLES
from buysell.core.exceptions import BadRequestError, NotFoundError
from buysell.core.pagination import page_offset
from buysell.domain.order import Coupon, CouponCreate, Order, OrderStatusUpdate
from buysell.domain.user import User
from buysell.repositories.admin_repository import AdminRepository
from buysell.repositories.coupon_repository import CouponRepository
from buysell.repositories.user_repository import UserRepository
from buysell.services.notification_service import NotificationService
from buysell.services.order_service import OrderService

logger = logging.getLogger(__name__)


class AdminService:

    def __init__(self, admin_repo: AdminRepository = None, user_repo: UserRepository = None,
                 coupon_repo: CouponRepository = None, order_service: OrderService = None,
                 notification_service: NotificationService = None):
        self.admin_repo = admin_repo or AdminRepository()
        self.user_repo = user_repo or UserRepository()
        self.coupon_repo = coupon_repo or CouponRepository()
        self.notifications = notification_service or NotificationService()
        self.order_service = order_service or OrderService(notification_service=self.notifications)

    def _audit(self, admin: TokenUser, action: str, entity_type: str,
               entity_id: Optional[int] = None, details: Optional[dict] = None) -> None:
        self.admin_repo.log_action(admin.id, action, entity_type, entity_id, details)

    def dashboard(self) -> dict:
        return self.admin_repo.get_dashboard_stats()

    # Users

    def list_users(self, role: Optional[str] = None, is_active: Optional[bool] = None,
                   search: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        return self.user_repo.find_all(
            role=role, is_active=is_active, search=search,
            limit=limit, offset=page_offset(page, limit)
        )

    def update_user(self, admin: TokenUser, user_id: int, role: Optional[str] = None,
                    is_active: Optional[bool] = None) -> User:
        """
        Raises:
            BadRequestError: unknown role, or an admin demoting/deactivating themselves
            NotFoundError: user missing
        """
        if role is not None and role not in USER_ROLES:
            raise BadRequestError(f"Role must be one of: {', '.join(USER_ROLES)}")

        if user_id == admin.id and ((role is not None and role != 'admin') or is_active is False):
            raise BadRequestError("You cannot demote or deactivate your own account")

        fields = {}
        if role is not None:
            fields['role'] = role
        if is_active is not None:
            fields['is_active'] = is_active

        user = self.user_repo.update_fields(user_id, fields)
        if not user:
            raise NotFoundError("User not found")

        self._audit(admin, 'update_user', 'user', user_id, fields)
        return user

    # Sellers

    def list_sellers(self, status: Optional[str] = None, page: int = 1,
                     limit: int = 20) -> Tuple[List[User], int]:
        return self.user_repo.find_all(
            role='seller', seller_status=status,
            limit=limit, offset=page_offset(page, limit)
        )

    def manage_seller(self, admin: TokenUser, user_id: int, action: str,
                      reason: Optional[str] = None) -> User:
        """
        approve -> role seller, seller_status approved
        reject  -> seller_status rejected
        suspend -> seller_status suspended, account deactivated
        """
        if action not in SELLER_ACTIONS:
            raise BadRequestError(f"Action must be one of: {', '.join(SELLER_ACTIONS)}")

        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        fields = {'seller_status': SELLER_ACTIONS[action]}
        if action == 'approve':
            fields['role'] = 'seller'
            fields['is_active'] = True
        elif action == 'suspend':
            fields['is_active'] = False

        user = self.user_repo.update_fields(user_id, fields)
        self._audit(admin, f"{action}_seller", 'user', user_id, {'reason': reason})
        logger.info(f"Seller {user_id} {fields['seller_status']} by admin {admin.id}")

        self.notifications.notify(
            user_id,
            'SELLER_STATUS_UPDATED',
            'Seller account update',
            f"Your seller account is now {fields['seller_status']}."
            + (f" Reason: {reason}" if reason else ""),
            {'seller_status': fields['seller_status']},
        )
        return user

    # Orders

    def list_orders(self, page: int = 1, limit: int = 20, **filters) -> Tuple[List[Order], int]:
        return self.order_service.list_all(page=page, limit=limit, **filters)

    def update_order_status(self, admin: TokenUser, order_id: int, payload: OrderStatusUpdate) -> Order:
        order = self.order_service.update_status(order_id, payload)
        self._audit(admin, 'update_order_status', 'order', order_id, {
            'status': payload.status,
            'tracking_number': payload.tracking_number,
        })
        return order

    # Coupons

    def list_coupons(self, active_only: bool = False) -> List[Coupon]:
        return self.coupon_repo.find_all(active_only)

    def create_coupon(self, admin: TokenUser, payload: CouponCreate) -> Coupon:
        coupon = self.coupon_repo.create(payload.model_dump())
        self._audit(admin, 'create_coupon', 'coupon', coupon.id, {'code': coupon.code})
        return coupon

    # Audit

    def audit_logs(self, action: Optional[str] = None, page: int = 1, limit: int = 50) -> Tuple[List[dict], int]:
        return self.admin_repo.find_audit_logs(action=action, limit=limit, offset=page_offset(page, limit))
