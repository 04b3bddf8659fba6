"""
Coupons API Endpoints
Admin coupon management, public validation and the user wallet

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
from app.domain.promotion import CouponClaimRequest, CouponCreate, CouponUpdate, CouponValidateRequest
from app.services.coupon_service import CouponService
from app.services.system_log_service import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Public / customer
# =============================================================================

@router.post("/validate")
async def validate_coupon(data: CouponValidateRequest, _: None = Depends(endpoint_rate_limit(10))):
    """Check a code against a subtotal and return the discount and resulting total"""
    try:
        result = CouponService().validate_code(data.code, data.subtotal)
        return {
            "status": "success",
            "data": {
                "coupon": result["coupon"].to_dict(),
                "discount": float(result["discount"]),
                "total": float(result["total"]),
            },
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error validating coupon: {e}")
        raise HTTPException(status_code=500, detail=f"Error validating coupon: {str(e)}")


@router.get("/wallet")
async def get_wallet(user: TokenUser = Depends(get_current_user)):
    """Claimed coupons and owned gift cards"""
    try:
        wallet = CouponService().wallet(user.id)
        return {
            "status": "success",
            "data": {
                "coupons": wallet["coupons"],
                "gift_cards": [card.to_dict() for card in wallet["gift_cards"]],
            },
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching wallet for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching wallet: {str(e)}")


@router.post("/claim", status_code=status.HTTP_201_CREATED)
async def claim_coupon(
    data: CouponClaimRequest,
    user: TokenUser = Depends(get_current_user),
    _: None = Depends(endpoint_rate_limit(10)),
):
    try:
        user_coupon = CouponService().claim(user.id, data.code)
        return {"status": "success", "data": user_coupon.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error claiming coupon for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error claiming coupon: {str(e)}")


# =============================================================================
# Admin
# =============================================================================

@router.get("/")
async def get_coupons(
    search: Optional[str] = Query(None, description="Code or description"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    try:
        limit, offset = page_to_offset(page, limit)
        coupons, total = CouponService().list_coupons(
            search=search, is_active=is_active, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "count": len(coupons),
            "data": [c.to_dict() for c in coupons],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching coupons: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching coupons: {str(e)}")


@router.get("/{coupon_id}")
async def get_coupon(coupon_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        return {"status": "success", "data": CouponService().get_coupon(coupon_id).to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching coupon: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_coupon(data: CouponCreate, request: Request, admin: TokenUser = Depends(require_admin)):
    """Create a coupon; the code is generated from code_prefix when omitted"""
    try:
        coupon = CouponService().create_coupon(data, admin_id=admin.id, ip_address=get_client_ip(request))
        return {"status": "success", "data": coupon.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating coupon: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating coupon: {str(e)}")


@router.put("/{coupon_id}")
async def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    request: Request,
    admin: TokenUser = Depends(require_admin),
):
    try:
        coupon = CouponService().update_coupon(
            coupon_id, data, admin_id=admin.id, ip_address=get_client_ip(request)
        )
        return {"status": "success", "data": coupon.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating coupon: {str(e)}")


@router.post("/{coupon_id}/toggle")
async def toggle_coupon(coupon_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        coupon = CouponService().toggle_active(coupon_id, admin_id=admin.id)
        return {"status": "success", "data": coupon.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error toggling coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error toggling coupon: {str(e)}")


@router.delete("/{coupon_id}")
async def delete_coupon(coupon_id: int, request: Request, admin: TokenUser = Depends(require_admin)):
    """Refused with 409 once any user has used the coupon"""
    try:
        coupon = CouponService().delete_coupon(coupon_id, admin_id=admin.id, ip_address=get_client_ip(request))
        return {"status": "success", "message": f"Coupon {coupon.code} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting coupon: {str(e)}")
