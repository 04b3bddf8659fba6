"""
Stock API Endpoints
Variant availability and checkout stock reservations

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.auth import TokenUser, get_current_user_optional, require_admin
from app.core.exceptions import AppError, ValidationError
from app.domain.operations import CancelReservationRequest, ConvertRequest, ReserveRequest
from app.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/availability/{variant_id}")
async def get_availability(variant_id: int):
    """Stock, reserved quantity and available quantity of a variant"""
    try:
        return {"status": "success", "data": StockService().availability(variant_id)}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching availability of variant {variant_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching availability: {str(e)}")


@router.post("/reserve", status_code=status.HTTP_201_CREATED)
async def reserve_stock(data: ReserveRequest, user: Optional[TokenUser] = Depends(get_current_user_optional)):
    try:
        reservation = StockService().reserve(
            data.variant_id,
            data.quantity,
            session_id=data.session_id,
            user_id=user.id if user else None,
            minutes=data.minutes,
        )
        return {"status": "success", "data": reservation.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error reserving stock: {e}")
        raise HTTPException(status_code=500, detail=f"Error reserving stock: {str(e)}")


@router.post("/convert")
async def convert_reservation(data: ConvertRequest):
    """
    Convert reservations into stock decrements

    Accepts a single reservation_id, or a session_id to convert every
    active reservation of that session.
    """
    try:
        service = StockService()
        if data.reservation_id is not None:
            reservations = [service.convert(data.reservation_id, order_id=data.order_id)]
        elif data.session_id:
            reservations = service.convert_for_session(data.session_id, order_id=data.order_id)
        else:
            raise ValidationError("reservation_id or session_id is required")
        return {
            "status": "success",
            "count": len(reservations),
            "data": [r.to_dict() for r in reservations],
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error converting reservation: {e}")
        raise HTTPException(status_code=500, detail=f"Error converting reservation: {str(e)}")


@router.post("/cancel")
async def cancel_reservation(
    data: CancelReservationRequest,
    user: Optional[TokenUser] = Depends(get_current_user_optional),
):
    try:
        service = StockService()
        if data.reservation_id is not None:
            reservation = service.cancel(data.reservation_id)
            return {"status": "success", "data": reservation.to_dict()}

        count = service.cancel_all(user_id=user.id if user and not data.session_id else None, session_id=data.session_id)
        return {"status": "success", "data": {"cancelled": count}}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error cancelling reservation: {e}")
        raise HTTPException(status_code=500, detail=f"Error cancelling reservation: {str(e)}")


@router.post("/cleanup-expired")
async def cleanup_expired(admin: TokenUser = Depends(require_admin)):
    """Cancel ACTIVE reservations past their expiry (cron target)"""
    try:
        count = StockService().cleanup_expired()
        return {"status": "success", "data": {"cancelled": count}}
    except Exception as e:
        logger.error(f"Error cleaning up reservations: {e}")
        raise HTTPException(status_code=500, detail=f"Error cleaning up reservations: {str(e)}")


@router.get("/low-stock")
async def get_low_stock(
    threshold: Optional[int] = Query(None, ge=0),
    admin: TokenUser = Depends(require_admin),
):
    try:
        variants = StockService().low_stock(threshold)
        return {"status": "success", "count": len(variants), "data": variants}
    except Exception as e:
        logger.error(f"Error fetching low stock variants: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching low stock: {str(e)}")


@router.get("/out-of-stock")
async def get_out_of_stock(admin: TokenUser = Depends(require_admin)):
    try:
        variants = StockService().out_of_stock()
        return {"status": "success", "count": len(variants), "data": variants}
    except Exception as e:
        logger.error(f"Error fetching out of stock variants: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching out of stock: {str(e)}")
