"""
Dashboard API Endpoints
Admin overview metrics

Author: TM3
Date: 2025-11-21
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import TokenUser, require_admin
from app.core.config import settings
from app.core.database import db_cursor
from app.repositories.order_repository import OrderRepository
from app.repositories.stock_repository import StockRepository
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()

NEW_USER_DAYS = 30


@router.get("/overview")
async def get_overview(admin: TokenUser = Depends(require_admin)):
    """
    Store overview

    Returns:
        total_sales (excluding cancelled and refunded orders), total_orders,
        new_users in the last 30 days, low_stock variant count and
        orders_by_status
    """
    try:
        with db_cursor() as cursor:
            stats = OrderRepository().get_stats(cursor=cursor)
            new_users = UserRepository().count_new_users(NEW_USER_DAYS, cursor=cursor)
            low_stock = StockRepository().count_low_stock(settings.LOW_STOCK_THRESHOLD, cursor=cursor)

        return {
            "status": "success",
            "data": {
                "total_sales": stats["total_sales"],
                "total_orders": stats["total_orders"],
                "new_users": new_users,
                "low_stock": low_stock,
                "orders_by_status": stats["orders_by_status"],
            },
        }
    except Exception as e:
        logger.error(f"Error fetching dashboard overview: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching dashboard overview: {str(e)}")


@router.get("/sales")
async def get_sales(
    days: int = Query(30, ge=1, le=365),
    admin: TokenUser = Depends(require_admin),
):
    """Daily revenue and order count"""
    try:
        sales = OrderRepository().get_daily_sales(days)
        return {"status": "success", "days": days, "count": len(sales), "data": sales}
    except Exception as e:
        logger.error(f"Error fetching daily sales: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching sales: {str(e)}")
