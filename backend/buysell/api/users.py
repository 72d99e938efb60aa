"""
Users API Endpoints
The current user's address book
"""
from fastapi import APIRouter, Depends, HTTPException, status

from buysell.core.auth import TokenUser, get_current_user
from buysell.core.exceptions import AppError
from buysell.domain.user import AddressCreate, AddressUpdate
from buysell.services.auth_service import AuthService

router = APIRouter()


def get_auth_service() -> AuthService:
    return AuthService()


@router.get("/me/addresses")
async def list_addresses(
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        addresses = service.list_addresses(user.id)
        return {"status": "success", "data": [address.to_dict() for address in addresses]}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching addresses: {str(e)}")


@router.post("/me/addresses", status_code=status.HTTP_201_CREATED)
async def create_address(
    payload: AddressCreate,
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        address = service.create_address(user.id, payload)
        return {"status": "success", "message": "Address added", "data": address.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating address: {str(e)}")


@router.put("/me/addresses/{address_id}")
async def update_address(
    address_id: int,
    payload: AddressUpdate,
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        address = service.update_address(user.id, address_id, payload)
        return {"status": "success", "message": "Address updated", "data": address.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating address: {str(e)}")


@router.delete("/me/addresses/{address_id}")
async def delete_address(
    address_id: int,
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    try:
        service.delete_address(user.id, address_id)
        return {"status": "success", "message": "Address deleted"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting address: {str(e)}")
