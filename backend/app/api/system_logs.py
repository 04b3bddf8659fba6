"""
System Logs API Endpoints
Admin view over the audit trail

Author: TM3
Date: 2025-11-21
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import TokenUser, require_admin
from app.core.exceptions import AppError
from app.services.system_log_service import SystemLogService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def get_system_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at", description="created_at | type | action"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    type: Optional[str] = Query(None, description="ERROR, WARNING or INFO"),
    action: Optional[str] = Query(None, description="Substring match on action"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None, description="Inclusive; a bare date covers the whole day"),
    user_id: Optional[int] = Query(None),
    admin: TokenUser = Depends(require_admin),
):
    try:
        result = SystemLogService().list_logs(
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
            type=type,
            action=action,
            start_date=start_date,
            end_date=end_date,
            user_id=user_id,
        )
        return {
            "status": "success",
            "data": [log.to_dict() for log in result["logs"]],
            "total": result["total"],
            "page": result["page"],
            "page_size": result["page_size"],
            "total_pages": result["total_pages"],
            "has_more": result["has_more"],
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching system logs: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching system logs: {str(e)}")


@router.delete("/older-than/{days}")
async def delete_old_logs(days: int, admin: TokenUser = Depends(require_admin)):
    if days < 1:
        raise HTTPException(status_code=400, detail="days must be at least 1")
    try:
        deleted = SystemLogService().delete_older_than(days)
        return {"status": "success", "data": {"deleted": deleted}}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting system logs: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting system logs: {str(e)}")
