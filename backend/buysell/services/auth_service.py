"""
Auth Service - accounts, sessions, password reset and addresses

Author: TM3
Date: 2025-11-05
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List

from buysell.core.auth import (
    REFRESH_TOKEN,
    create_token,
    create_token_pair,
    decode_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from buysell.core.config import settings
from buysell.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from buysell.domain.user import (
    Address,
    AddressCreate,
    AddressUpdate,
    PasswordChange,
    PasswordReset,
    User,
    UserCreate,
    UserLogin,
    UserUpdate,
)
from buysell.repositories.user_repository import AddressRepository, UserRepository
from buysell.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a reset link has been sent"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthService:
    """
    Business logic for user accounts

    Handles:
    - Signup / login / token refresh
    - Profile and password changes
    - Forgot / reset password with hashed one-time tokens
    - The user's address book
    """

    def __init__(self, user_repo: UserRepository = None, address_repo: AddressRepository = None,
                 notification_service: NotificationService = None):
        self.user_repo = user_repo or UserRepository()
        self.address_repo = address_repo or AddressRepository()
        self.notifications = notification_service or NotificationService()

    @staticmethod
    def _session(user: User) -> dict:
        return {
            'user': user.to_dict(),
            **create_token_pair(user.id, user.email, user.role),
        }

    def signup(self, payload: UserCreate) -> dict:
        user = self.user_repo.create(
            email=payload.email,
            password_hash=hash_password(payload.password),
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            role=payload.role,
            store_name=payload.store_name,
        )
        logger.info(f"New {user.role} account {user.id}")

        self.notifications.notify(
            user.id,
            'WELCOME',
            'Welcome to Buysell',
            f"Hi {user.first_name}, your account is ready."
            if user.role != 'seller'
            else f"Hi {user.first_name}, your seller account is awaiting approval.",
        )
        return self._session(user)

    def login(self, payload: UserLogin) -> dict:
        user = self.user_repo.find_by_email(payload.email)
        if not user or not verify_password(payload.password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            raise ForbiddenError("Account is disabled")

        self.user_repo.touch_last_login(user.id)
        return self._session(user)

    def refresh(self, refresh_token: str) -> dict:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)

        user = self.user_repo.find_by_id(int(payload['sub']))
        if not user or not user.is_active:
            raise UnauthorizedError("Invalid refresh token")

        return {
            'access_token': create_token(user.id, user.email, user.role),
            'token_type': 'bearer',
            'expires_in': settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    def get_profile(self, user_id: int) -> User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: int, payload: UserUpdate) -> User:
        fields = payload.model_dump(exclude_unset=True)
        user = self.user_repo.update_fields(user_id, fields)
        if not user:
            raise NotFoundError("User not found")
        return user

    def change_password(self, user_id: int, payload: PasswordChange) -> None:
        user = self.get_profile(user_id)
        if not verify_password(payload.current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")

        self.user_repo.update_password(user_id, hash_password(payload.new_password))
        self.notifications.notify(
            user_id, 'SECURITY_ALERT', 'Password changed', 'Your password was changed.'
        )

    def forgot_password(self, email: str) -> str:
        """Always answers the same message so emails cannot be enumerated"""
        user = self.user_repo.find_by_email(email)
        if user and user.is_active:
            token = generate_reset_token()
            expires_at = datetime.now(timezone.utc) + timedelta(
                minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
            )
            self.user_repo.set_reset_token(user.id, hash_token(token), expires_at)
            # No mail delivery; the link is logged for the operator
            logger.info(
                f"Password reset requested for user {user.id}: "
                f"{settings.FRONTEND_URL}/reset-password?token={token}"
            )
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, payload: PasswordReset) -> None:
        user = self.user_repo.find_by_reset_token(hash_token(payload.token))
        if not user:
            raise BadRequestError("Reset token is invalid or has expired")

        self.user_repo.update_password(user.id, hash_password(payload.new_password))
        logger.info(f"Password reset completed for user {user.id}")

    # Addresses

    def list_addresses(self, user_id: int) -> List[Address]:
        return self.address_repo.find_by_user(user_id)

    def create_address(self, user_id: int, payload: AddressCreate) -> Address:
        return self.address_repo.create(user_id, payload.model_dump())

    def update_address(self, user_id: int, address_id: int, payload: AddressUpdate) -> Address:
        address = self.address_repo.update(address_id, user_id, payload.model_dump(exclude_unset=True))
        if not address:
            raise NotFoundError("Address not found")
        return address

    def delete_address(self, user_id: int, address_id: int) -> None:
        if not self.address_repo.delete(address_id, user_id):
            raise NotFoundError("Address not found")
