"""
Authentication API Endpoints
Signup, login, token refresh, profile and password management

Author: TM3
Date: 2025-11-08
"""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr

from buysell.core.auth import TokenUser, get_current_user
from buysell.core.exceptions import AppError
from buysell.core.rate_limit import limit_endpoint
from buysell.domain.user import PasswordChange, PasswordReset, UserCreate, UserLogin, UserUpdate
from buysell.services.auth_service import AuthService

router = APIRouter()


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


def get_auth_service() -> AuthService:
    return AuthService()


@router.post("/signup", status_code=status.HTTP_201_CREATED, dependencies=[Depends(limit_endpoint())])
async def signup(payload: UserCreate, service: AuthService = Depends(get_auth_service)):
    """
    Create a customer or seller account

    Sellers start with seller_status=pending until an admin approves them.
    """
    try:
        session = service.signup(payload)
        return {
            "status": "success",
            "message": "Account created",
            "data": session
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating account: {str(e)}")


@router.post("/login", dependencies=[Depends(limit_endpoint())])
async def login(payload: UserLogin, service: AuthService = Depends(get_auth_service)):
    try:
        return {"status": "success", "data": service.login(payload)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error logging in: {str(e)}")


@router.post("/refresh")
async def refresh_token(payload: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    try:
        return {"status": "success", "data": service.refresh(payload.refresh_token)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error refreshing token: {str(e)}")


@router.get("/me")
async def get_me(
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        return {"status": "success", "data": service.get_profile(user.id).to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching profile: {str(e)}")


@router.put("/me")
async def update_me(
    payload: UserUpdate,
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        updated = service.update_profile(user.id, payload)
        return {"status": "success", "message": "Profile updated", "data": updated.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating profile: {str(e)}")


@router.post("/change-password")
async def change_password(
    payload: PasswordChange,
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        service.change_password(user.id, payload)
        return {"status": "success", "message": "Password changed"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error changing password: {str(e)}")


@router.post("/forgot-password", dependencies=[Depends(limit_endpoint())])
async def forgot_password(payload: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    """Same answer whether or not the email is registered"""
    try:
        return {"status": "success", "message": service.forgot_password(payload.email)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error requesting password reset: {str(e)}")


@router.post("/reset-password", dependencies=[Depends(limit_endpoint())])
async def reset_password(payload: PasswordReset, service: AuthService = Depends(get_auth_service)):
    try:
        service.reset_password(payload)
        return {"status": "success", "message": "Password has been reset"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resetting password: {str(e)}")
