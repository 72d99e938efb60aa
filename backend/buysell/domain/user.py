"""
User Domain Model

Customers, sellers, moderators and admins share one users table;
`role` decides what they can do and `seller_status` tracks seller vetting.

Author: TM3
Date: 2025-11-03
"""
import re
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from typing import Optional
from datetime import datetime

from buysell.core.constants import MIN_PASSWORD_LENGTH, SIGNUP_ROLES


def validate_password_strength(password: str) -> str:
    """At least MIN_PASSWORD_LENGTH chars with an uppercase, a lowercase and a digit"""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one digit")
    return password


class User(BaseModel):
    """User account"""

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="Login email (unique)")
    password_hash: Optional[str] = Field(None, description="bcrypt hash", exclude=True)
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    phone: Optional[str] = Field(None, description="Phone number")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")
    role: str = Field("customer", description="customer, seller, admin, moderator")
    seller_status: Optional[str] = Field(None, description="pending, approved, rejected, suspended")
    store_name: Optional[str] = Field(None, description="Seller store name")
    is_active: bool = Field(True, description="Whether the account can log in")
    email_verified: bool = Field(False, description="Email verified flag")
    last_login_at: Optional[datetime] = Field(None, description="Last successful login")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in [self.first_name, self.last_name] if part)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_approved_seller(self) -> bool:
        return self.role == "seller" and self.seller_status == "approved"

    def to_dict(self) -> dict:
        """Public representation; never includes the password hash"""
        data = self.model_dump()
        data['full_name'] = self.full_name
        return data


class UserCreate(BaseModel):
    """Signup payload"""
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    role: str = "customer"
    store_name: Optional[str] = Field(None, max_length=150)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password_strength(value)

    @field_validator("role")
    @classmethod
    def check_role(cls, value: str) -> str:
        if value not in SIGNUP_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(SIGNUP_ROLES)}")
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    """Profile fields a user may change on their own account"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    avatar_url: Optional[str] = None
    store_name: Optional[str] = Field(None, max_length=150)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password_strength(value)


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=10)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password_strength(value)


class Address(BaseModel):
    """Shipping / billing address"""

    id: int
    user_id: int
    label: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    region: Optional[str] = None
    country: str = Field(..., description="ISO 3166-1 alpha-2 code")
    postal_code: Optional[str] = None
    is_default: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        return self.model_dump()

    def snapshot(self) -> dict:
        """Copy stored on the order so later edits don't rewrite history"""
        data = self.model_dump(exclude={'user_id', 'created_at', 'is_default'})
        return data


class AddressCreate(BaseModel):
    label: Optional[str] = Field(None, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    country: str = Field(..., min_length=2, max_length=2)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_default: bool = False

    @field_validator("country")
    @classmethod
    def upper_country(cls, value: str) -> str:
        return value.upper()


class AddressUpdate(BaseModel):
    label: Optional[str] = Field(None, max_length=50)
    full_name: Optional[str] = Field(None, min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    address_line1: Optional[str] = Field(None, min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_default: Optional[bool] = None

    @field_validator("country")
    @classmethod
    def upper_country(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value
