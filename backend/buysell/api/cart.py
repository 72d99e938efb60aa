"""
Cart API Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException

from buysell.core.auth import TokenUser, get_current_user
from buysell.core.exceptions import AppError
from buysell.domain.cart import CartItemAdd, CartItemUpdate
from buysell.services.cart_service import CartService

router = APIRouter()


def get_cart_service() -> CartService:
    return CartService()


@router.get("/")
async def get_cart(
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        return {"status": "success", "data": service.get_cart(user.id)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cart: {str(e)}")


@router.post("/items")
async def add_to_cart(
    payload: CartItemAdd,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Adds to an existing line for the same product instead of duplicating it"""
    try:
        item = service.add_item(user.id, payload.product_id, payload.quantity)
        return {"status": "success", "message": "Item added to cart", "data": item.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error adding to cart: {str(e)}")


@router.put("/items/{item_id}")
async def update_cart_item(
    item_id: int,
    payload: CartItemUpdate,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        item = service.update_item(user.id, item_id, payload.quantity)
        return {"status": "success", "message": "Cart updated", "data": item.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating cart: {str(e)}")


@router.delete("/items/{item_id}")
async def remove_cart_item(
    item_id: int,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        service.remove_item(user.id, item_id)
        return {"status": "success", "message": "Item removed from cart"}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error removing cart item: {str(e)}")


@router.delete("/")
async def clear_cart(
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        removed = service.clear(user.id)
        return {"status": "success", "message": "Cart cleared", "data": {"removed": removed}}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error clearing cart: {str(e)}")


@router.get("/count")
async def cart_count(
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        return {"status": "success", "data": {"count": service.count(user.id)}}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error counting cart items: {str(e)}")
