"""
Returns API Endpoints
Customer return requests and admin processing

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.core.auth import TokenUser, get_current_user, require_admin
from app.core.exceptions import AppError
from app.core.pagination import build_pagination, page_to_offset
from app.core.rate_limit import endpoint_rate_limit
from app.domain.operations import AdminReturnCreate, ReturnCreate, ReturnStatusUpdate
from app.services.return_service import ReturnService
from app.services.system_log_service import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_return(
    data: ReturnCreate,
    user: TokenUser = Depends(get_current_user),
    _: None = Depends(endpoint_rate_limit(5)),
):
    """Open a return for a line of a shipped or delivered order"""
    try:
        request = ReturnService().create_for_user(user.id, data)
        return {"status": "success", "data": request.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating return for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating return: {str(e)}")


@router.get("/my")
async def get_my_returns(user: TokenUser = Depends(get_current_user)):
    try:
        requests = ReturnService().list_for_user(user.id)
        return {"status": "success", "count": len(requests), "data": [r.to_dict() for r in requests]}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching returns for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching returns: {str(e)}")


# =============================================================================
# Admin
# =============================================================================

@router.get("/")
async def get_returns(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="RETURN or EXCHANGE"),
    search: Optional[str] = Query(None, description="Order number, email or reason"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    try:
        limit, offset = page_to_offset(page, limit)
        requests, total = ReturnService().list_returns(
            status=status, type=type, search=search, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "count": len(requests),
            "data": [r.to_dict() for r in requests],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching returns: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching returns: {str(e)}")


@router.post("/admin", status_code=status.HTTP_201_CREATED)
async def create_return_for_user(data: AdminReturnCreate, admin: TokenUser = Depends(require_admin)):
    try:
        request = ReturnService().create_for_admin(data, admin_id=admin.id)
        return {"status": "success", "data": request.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating return for user {data.user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating return: {str(e)}")


@router.get("/{return_id}")
async def get_return(return_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        return {"status": "success", "data": ReturnService().get_return(return_id).to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching return {return_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching return: {str(e)}")


@router.put("/{return_id}/status")
async def update_return_status(
    return_id: int,
    data: ReturnStatusUpdate,
    request: Request,
    admin: TokenUser = Depends(require_admin),
):
    try:
        updated = ReturnService().update_status(
            return_id, data, admin_id=admin.id, ip_address=get_client_ip(request)
        )
        return {"status": "success", "data": updated.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating return {return_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating return: {str(e)}")
