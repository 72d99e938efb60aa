"""
Authentication for the Buysell backend

- Password hashing (bcrypt through passlib)
- Access / refresh JWT issuing and validation (HS256)
- FastAPI dependencies providing the current user and role checks
"""
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel

from buysell.core.config import settings
from buysell.repositories.user_repository import UserRepository


# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenUser(BaseModel):
    """User data extracted from JWT token"""
    id: int
    email: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash)


def generate_reset_token() -> str:
    """Random url-safe token sent to the user; only its hash is stored"""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Hash a reset token using SHA-256"""
    return hashlib.sha256(token.encode()).hexdigest()


# =============================================================================
# Tokens
# =============================================================================

def create_token(user_id: int, email: str, role: str, token_type: str = ACCESS_TOKEN) -> str:
    """
    Issue a signed JWT.

    Payload:
    {
        "sub": "42",
        "email": "awa@example.com",
        "role": "customer",
        "type": "access",
        "iat": 1234567890,
        "exp": 1234567890
    }
    """
    if token_type == REFRESH_TOKEN:
        ttl = timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES)
    else:
        ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_token_pair(user_id: int, email: str, role: str) -> dict:
    return {
        "access_token": create_token(user_id, email, role, ACCESS_TOKEN),
        "refresh_token": create_token(user_id, email, role, REFRESH_TOKEN),
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> dict:
    """Decode and validate a JWT, raising 401 on any problem"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if payload.get("type") != expected_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token type, expected {expected_type} token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return payload


def _user_id_from_payload(payload: dict) -> int:
    user_id = payload.get("sub")
    email = payload.get("email")

    if not user_id or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing user id or email",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: bad user id",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user_id


def _load_account(user_id: int, user_repo: UserRepository) -> TokenUser:
    """
    Resolve token subject against the users table.

    Role and active flag come from the row, so a suspension or demotion
    takes effect on the next request rather than when the token expires.
    """
    user = user_repo.find_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"}
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled"
        )
    return TokenUser(id=user.id, email=user.email, role=user.role)


# =============================================================================
# Dependencies
# =============================================================================

def get_user_repository() -> UserRepository:
    return UserRepository()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repository)
) -> TokenUser:
    """
    Dependency that validates the JWT and loads the current account.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_token(credentials.credentials)
    return _load_account(_user_id_from_payload(payload), user_repo)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repository)
) -> Optional[TokenUser]:
    """Optional authentication - returns None if no valid token or usable account."""
    if not credentials:
        return None

    try:
        payload = decode_token(credentials.credentials)
        return _load_account(_user_id_from_payload(payload), user_repo)
    except HTTPException:
        return None


def require_role(*allowed_roles: str):
    """
    Dependency factory for role-based access control.

    Admins always pass.

    Usage:
        @router.post("/products")
        async def create_product(user: TokenUser = Depends(require_role("seller"))):
            ...
    """
    async def role_checker(
        user: TokenUser = Depends(get_current_user)
    ) -> TokenUser:
        if user.role != "admin" and user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(allowed_roles)}, your role: {user.role}"
            )
        return user

    return role_checker


# Convenience dependencies for common role requirements
require_admin = require_role("admin")
require_seller = require_role("seller")
