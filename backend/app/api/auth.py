"""
Authentication API endpoints
- Sign-up and login (JWT access tokens)
- Current user profile and password
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from app.core.auth import TokenUser, get_current_user
from app.core.exceptions import AppError
from app.domain.user import LoginRequest, PasswordChange, ProfileUpdate, SignupRequest
from app.services.auth_service import AuthService, InvalidCredentialsError
from app.services.cart_service import CartService
from app.services.system_log_service import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(data: SignupRequest, request: Request):
    """Register a new customer account"""
    try:
        user = AuthService().signup(data, ip_address=get_client_ip(request))
        return {"status": "success", "data": user.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating account: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating account: {str(e)}")


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    x_session_id: Optional[str] = Header(None),
):
    """
    Exchange email and password for an access token

    A guest cart bound to X-Session-Id is merged into the user's cart.
    """
    try:
        result = AuthService().login(data.email, data.password, ip_address=get_client_ip(request))
        user = result["user"]

        if x_session_id:
            CartService().merge_guest_cart(user.id, x_session_id)

        return {
            "access_token": result["access_token"],
            "token_type": result["token_type"],
            "user": user.to_dict(),
        }
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error logging in: {e}")
        raise HTTPException(status_code=500, detail=f"Error logging in: {str(e)}")


@router.get("/me")
async def get_me(user: TokenUser = Depends(get_current_user)):
    """Get the current user's profile"""
    try:
        profile = AuthService().get_profile(user.id)
        return {"status": "success", "data": profile.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching profile: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching profile: {str(e)}")


@router.put("/me")
async def update_me(data: ProfileUpdate, user: TokenUser = Depends(get_current_user)):
    try:
        profile = AuthService().update_profile(user.id, data)
        return {"status": "success", "data": profile.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating profile: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating profile: {str(e)}")


@router.put("/me/password")
async def change_password(data: PasswordChange, user: TokenUser = Depends(get_current_user)):
    try:
        AuthService().change_password(user.id, data.current_password, data.new_password)
        return {"status": "success", "message": "Password updated"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error changing password: {e}")
        raise HTTPException(status_code=500, detail=f"Error changing password: {str(e)}")
