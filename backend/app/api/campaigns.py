"""
Campaigns API Endpoints

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.auth import TokenUser, require_admin
from app.core.exceptions import AppError
from app.core.pagination import build_pagination, page_to_offset
from app.core.rate_limit import endpoint_rate_limit
from app.domain.promotion import CampaignCreate, CampaignUpdate
from app.services.campaign_service import CampaignService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/active")
async def get_active_campaigns():
    """Campaigns that are active and within their date window"""
    try:
        campaigns = CampaignService().list_running()
        return {"status": "success", "count": len(campaigns), "data": [c.to_dict() for c in campaigns]}
    except Exception as e:
        logger.error(f"Error fetching active campaigns: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching campaigns: {str(e)}")


@router.get("/")
async def get_campaigns(
    search: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="PERCENT, FIXED, BOGO or FREE_SHIPPING"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    try:
        limit, offset = page_to_offset(page, limit)
        campaigns, total = CampaignService().list_campaigns(
            search=search, type=type, is_active=is_active, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "count": len(campaigns),
            "data": [c.to_dict() for c in campaigns],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching campaigns: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching campaigns: {str(e)}")


@router.get("/{campaign_id}")
async def get_campaign(campaign_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        return {"status": "success", "data": CampaignService().get_campaign(campaign_id).to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching campaign {campaign_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching campaign: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: CampaignCreate,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    try:
        campaign = CampaignService().create_campaign(data, admin_id=admin.id)
        return {"status": "success", "data": campaign.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating campaign: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating campaign: {str(e)}")


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: int,
    data: CampaignUpdate,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    try:
        campaign = CampaignService().update_campaign(campaign_id, data, admin_id=admin.id)
        return {"status": "success", "data": campaign.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating campaign {campaign_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating campaign: {str(e)}")


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: int,
    admin: TokenUser = Depends(require_admin),
    _: None = Depends(endpoint_rate_limit(20)),
):
    try:
        campaign = CampaignService().delete_campaign(campaign_id, admin_id=admin.id)
        return {"status": "success", "message": f"Campaign {campaign.name} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting campaign {campaign_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting campaign: {str(e)}")
