"""
Address book API endpoints (current user only)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import TokenUser, get_current_user
from app.core.exceptions import AppError
from app.domain.user import AddressCreate, AddressUpdate
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def list_addresses(user: TokenUser = Depends(get_current_user)):
    try:
        addresses = AuthService().list_addresses(user.id)
        return {
            "status": "success",
            "count": len(addresses),
            "data": [address.to_dict() for address in addresses],
        }
    except Exception as e:
        logger.error(f"Error fetching addresses: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching addresses: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_address(data: AddressCreate, user: TokenUser = Depends(get_current_user)):
    """Create an address; is_default clears the user's other default"""
    try:
        address = AuthService().create_address(user.id, data)
        return {"status": "success", "data": address.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating address: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating address: {str(e)}")


@router.put("/{address_id}")
async def update_address(address_id: int, data: AddressUpdate, user: TokenUser = Depends(get_current_user)):
    try:
        address = AuthService().update_address(user.id, address_id, data)
        return {"status": "success", "data": address.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating address {address_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating address: {str(e)}")


@router.delete("/{address_id}")
async def delete_address(address_id: int, user: TokenUser = Depends(get_current_user)):
    try:
        AuthService().delete_address(user.id, address_id)
        return {"status": "success", "message": f"Address {address_id} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting address {address_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting address: {str(e)}")
