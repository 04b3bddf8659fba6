"""
Gift Cards API Endpoints

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.auth import TokenUser, get_current_user, require_admin
from app.core.exceptions import AppError
from app.core.pagination import build_pagination, page_to_offset
from app.core.rate_limit import endpoint_rate_limit
from app.domain.promotion import GiftCardCreate, GiftCardTransactionCreate, GiftCardUpdate
from app.services.gift_card_service import GiftCardService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/code/{code}")
async def get_gift_card_by_code(code: str, user: TokenUser = Depends(get_current_user)):
    """Balance check; the code is matched after sanitising (0→O, 1→I, ...)"""
    try:
        card = GiftCardService().get_by_code(code, user_id=user.id, is_admin=user.is_admin)
        return {"status": "success", "data": card.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching gift card by code: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching gift card: {str(e)}")


@router.get("/")
async def get_gift_cards(
    search: Optional[str] = Query(None, description="Code"),
    status: Optional[str] = Query(None, description="ACTIVE, USED or EXPIRED"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    try:
        limit, offset = page_to_offset(page, limit)
        cards, total = GiftCardService().list_cards(search=search, status=status, limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "count": len(cards),
            "data": [c.to_dict() for c in cards],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching gift cards: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching gift cards: {str(e)}")


@router.get("/transactions")
async def get_transactions(
    gift_card_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    """Transactions of one card, or of all cards when gift_card_id is omitted"""
    try:
        limit, offset = page_to_offset(page, limit)
        transactions, total = GiftCardService().list_transactions(
            card_id=gift_card_id, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "count": len(transactions),
            "data": [t.to_dict() for t in transactions],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching gift card transactions: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching transactions: {str(e)}")


@router.post("/transactions", status_code=status.HTTP_201_CREATED)
async def add_transaction(
    data: GiftCardTransactionCreate,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    """Credit (positive) or debit (negative) a card"""
    try:
        transaction = GiftCardService().add_transaction(
            data.gift_card_id, data.amount, description=data.description, admin_id=admin.id
        )
        return {"status": "success", "data": transaction.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error adding gift card transaction: {e}")
        raise HTTPException(status_code=500, detail=f"Error adding transaction: {str(e)}")


@router.post("/expire-overdue")
async def expire_overdue(admin: TokenUser = Depends(require_admin)):
    try:
        count = GiftCardService().expire_overdue()
        return {"status": "success", "data": {"expired": count}}
    except Exception as e:
        logger.error(f"Error expiring gift cards: {e}")
        raise HTTPException(status_code=500, detail=f"Error expiring gift cards: {str(e)}")


@router.get("/{card_id}")
async def get_gift_card(card_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        return {"status": "success", "data": GiftCardService().get_card(card_id).to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching gift card {card_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching gift card: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_gift_card(
    data: GiftCardCreate,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    try:
        card = GiftCardService().create_card(data, admin_id=admin.id)
        return {"status": "success", "data": card.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating gift card: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating gift card: {str(e)}")


@router.put("/{card_id}")
async def update_gift_card(
    card_id: int,
    data: GiftCardUpdate,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    """Changing initial_balance keeps the amount already spent"""
    try:
        card = GiftCardService().update_card(card_id, data, admin_id=admin.id)
        return {"status": "success", "data": card.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating gift card {card_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating gift card: {str(e)}")


@router.delete("/{card_id}")
async def delete_gift_card(
    card_id: int,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    try:
        card = GiftCardService().delete_card(card_id, admin_id=admin.id)
        return {"status": "success", "message": f"Gift card {card.code} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting gift card {card_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting gift card: {str(e)}")
