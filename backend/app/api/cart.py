"""
Cart API Endpoints

Signed-in users get their own cart; guests send an X-Session-Id header.

Author: TM3
Date: 2025-11-20
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from app.core.auth import TokenUser, get_current_user_optional
from app.core.exceptions import AppError
from app.domain.cart import CartItemAdd, CartItemUpdate
from app.services.cart_service import CartService

logger = logging.getLogger(__name__)

router = APIRouter()


def cart_owner(
    user: Optional[TokenUser] = Depends(get_current_user_optional),
    x_session_id: Optional[str] = Header(None),
) -> dict:
    """Keyword arguments identifying the cart owner"""
    return {"user_id": user.id if user else None, "session_id": x_session_id}


@router.get("/")
async def get_cart(owner: dict = Depends(cart_owner)):
    try:
        cart = CartService().get_cart(**owner)
        return {"status": "success", "data": cart.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching cart: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching cart: {str(e)}")


@router.post("/items")
async def add_cart_item(data: CartItemAdd, owner: dict = Depends(cart_owner)):
    """Add a product (and variant) to the cart; an existing line is incremented"""
    try:
        cart = CartService().add_item(data, **owner)
        return {"status": "success", "data": cart.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error adding cart item: {e}")
        raise HTTPException(status_code=500, detail=f"Error adding cart item: {str(e)}")


@router.put("/items/{item_id}")
async def update_cart_item(item_id: int, data: CartItemUpdate, owner: dict = Depends(cart_owner)):
    try:
        cart = CartService().update_item(item_id, data.quantity, **owner)
        return {"status": "success", "data": cart.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating cart item {item_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating cart item: {str(e)}")


@router.delete("/items/{item_id}")
async def remove_cart_item(item_id: int, owner: dict = Depends(cart_owner)):
    try:
        cart = CartService().remove_item(item_id, **owner)
        return {"status": "success", "data": cart.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error removing cart item {item_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error removing cart item: {str(e)}")


@router.delete("/")
async def clear_cart(owner: dict = Depends(cart_owner)):
    try:
        cart = CartService().clear(**owner)
        return {"status": "success", "data": cart.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error clearing cart: {e}")
        raise HTTPException(status_code=500, detail=f"Error clearing cart: {str(e)}")
