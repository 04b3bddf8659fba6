"""
Checkout API Endpoint

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from app.core.auth import TokenUser, get_current_user
from app.core.exceptions import AppError
from app.core.rate_limit import endpoint_rate_limit
from app.domain.checkout import CheckoutRequest
from app.services.checkout_service import CheckoutService
from app.services.system_log_service import SystemLogService, get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process-payment")
async def process_payment(
    data: CheckoutRequest,
    request: Request,
    x_idempotency_key: Optional[str] = Header(None),
    user: TokenUser = Depends(get_current_user),
    _: None = Depends(endpoint_rate_limit(10)),
):
    """
    Pay for the user's cart and create the order

    Retrying with the same X-Idempotency-Key returns the original result.
    """
    ip_address = get_client_ip(request)
    try:
        result = CheckoutService().process_payment(
            user.id, data, idempotency_key=x_idempotency_key, ip_address=ip_address
        )
        return {"status": "success", "data": result.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error processing payment for user {user.id}: {e}")
        SystemLogService().log_error(
            "CHECKOUT_FAILED", f"Payment processing failed: {e}",
            user_id=user.id, ip_address=ip_address,
            metadata={"idempotency_key": x_idempotency_key},
        )
        raise HTTPException(status_code=500, detail=f"Error processing payment: {str(e)}")
