"""
Orders API Endpoints
Customer orders and admin order management

Author: TM3
Date: 2025-10-17
Updated: 2025-11-21 (storefront orders, status machine, timeline)
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.core.auth import TokenUser, get_current_user, require_admin
from app.core.exceptions import AppError
from app.core.pagination import build_pagination, page_to_offset
from app.domain.order import AdminNotesUpdate, OrderCreate, OrderStatusUpdate, TimelineEntryCreate
from app.services.order_service import OrderService
from app.services.system_log_service import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Customer endpoints
# =============================================================================

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, user: TokenUser = Depends(get_current_user)):
    """Create a PENDING order from explicit items"""
    try:
        order = OrderService().create_order(user.id, data)
        return {"status": "success", "data": order.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating order: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating order: {str(e)}")


@router.get("/my")
async def get_my_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: TokenUser = Depends(get_current_user),
):
    try:
        limit, offset = page_to_offset(page, limit)
        orders, total = OrderService().list_user_orders(user.id, status=status, limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "count": len(orders),
            "data": [order.to_dict() for order in orders],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching orders for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/my/{order_id}")
async def get_my_order(order_id: int, user: TokenUser = Depends(get_current_user)):
    """Another user's order answers 404"""
    try:
        order = OrderService().get_order(order_id, user_id=user.id)
        return {"status": "success", "data": order.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.post("/my/{order_id}/cancel")
async def cancel_my_order(order_id: int, user: TokenUser = Depends(get_current_user)):
    try:
        order = OrderService().cancel_own(order_id, user.id)
        return {"status": "success", "data": order.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error cancelling order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error cancelling order: {str(e)}")


# =============================================================================
# Admin endpoints
# =============================================================================

@router.get("/")
async def get_orders(
    search: Optional[str] = Query(None, description="Order number, email, first or last name"),
    status: Optional[str] = Query(None, description="Order status ('all' for every status)"),
    user_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[date] = Query(None, description="YYYY-MM-DD"),
    min_total: Optional[float] = Query(None, ge=0),
    max_total: Optional[float] = Query(None, ge=0),
    sort_by: str = Query("created_at", description="created_at | total | order_number | status"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    """
    Get all orders with filters

    Returns orders with customer and items, plus pagination metadata
    """
    try:
        limit, offset = page_to_offset(page, limit)
        orders, total = OrderService().list_orders(
            search=search,
            status=status,
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
            min_total=min_total,
            max_total=max_total,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
        return {
            "status": "success",
            "total": total,
            "count": len(orders),
            "data": [order.to_dict() for order in orders],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching orders: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/{order_id}")
async def get_order(order_id: int, admin: TokenUser = Depends(require_admin)):
    """
    Get a single order by ID

    Includes customer, items, addresses, timeline and payments
    """
    try:
        order = OrderService().get_order(order_id)
        return {"status": "success", "data": order.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.get("/{order_id}/next-statuses")
async def get_next_statuses(order_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        return {"status": "success", "data": OrderService().next_statuses(order_id)}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching next statuses for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching next statuses: {str(e)}")


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    request: Request,
    admin: TokenUser = Depends(require_admin),
):
    try:
        order = OrderService().update_status(
            order_id, data, admin_id=admin.id, ip_address=get_client_ip(request)
        )
        return {"status": "success", "data": order.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating status of order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating order status: {str(e)}")


@router.put("/{order_id}/admin-notes")
async def update_admin_notes(order_id: int, data: AdminNotesUpdate, admin: TokenUser = Depends(require_admin)):
    try:
        order = OrderService().update_admin_notes(order_id, data.admin_notes)
        return {"status": "success", "data": order.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating notes of order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating admin notes: {str(e)}")


@router.delete("/{order_id}")
async def delete_order(order_id: int, admin: TokenUser = Depends(require_admin)):
    """Delete an order; stock is restored unless it was already cancelled"""
    try:
        order = OrderService().delete_order(order_id, admin_id=admin.id)
        return {"status": "success", "message": f"Order {order.order_number} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting order: {str(e)}")


@router.get("/{order_id}/timeline")
async def get_order_timeline(order_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        entries = OrderService().get_timeline(order_id)
        return {"status": "success", "count": len(entries), "data": [e.to_dict() for e in entries]}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching timeline of order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching timeline: {str(e)}")


@router.post("/{order_id}/timeline", status_code=status.HTTP_201_CREATED)
async def add_order_timeline(
    order_id: int,
    data: TimelineEntryCreate,
    admin: TokenUser = Depends(require_admin),
):
    try:
        entry = OrderService().add_timeline_entry(order_id, data, admin_id=admin.id)
        return {"status": "success", "data": entry.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error adding timeline entry to order {order_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error adding timeline entry: {str(e)}")
