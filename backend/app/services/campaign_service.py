"""
Campaign Service
Storefront promotion banners (percent / fixed / BOGO / free shipping)

Author: TM3
Date: 2025-11-21
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.core.exceptions import NotFoundError, ValidationError
from app.domain.promotion import Campaign, CampaignCreate, CampaignType, CampaignUpdate, as_utc
from app.repositories.campaign_repository import CampaignRepository
from app.services.system_log_service import SystemLogService
from app.utils.slugify import slugify, unique_slug

logger = logging.getLogger(__name__)


def validate_campaign_rules(type, value, start_date, end_date):
    """
    Raise ValidationError when the campaign values are inconsistent

    PERCENT needs 0 < value <= 100, FIXED needs value > 0,
    and the campaign must end after it starts.
    """
    campaign_type = CampaignType(type)
    if as_utc(end_date) <= as_utc(start_date):
        raise ValidationError("end_date must be after start_date")

    if campaign_type == CampaignType.PERCENT:
        if value is None or value <= 0 or value > Decimal("100"):
            raise ValidationError("Percent campaigns need a value between 0 and 100")
    elif campaign_type == CampaignType.FIXED:
        if value is None or value <= 0:
            raise ValidationError("Fixed campaigns need a value greater than 0")


class CampaignService:

    def __init__(self):
        self.repo = CampaignRepository()
        self.system_logs = SystemLogService()

    def list_campaigns(
        self,
        search: Optional[str] = None,
        type: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Campaign], int]:
        return self.repo.find_all(search=search, type=type, is_active=is_active, limit=limit, offset=offset)

    def list_running(self) -> List[Campaign]:
        return self.repo.find_running(datetime.now(timezone.utc))

    def get_campaign(self, campaign_id: int) -> Campaign:
        campaign = self.repo.find_by_id(campaign_id)
        if not campaign:
            raise NotFoundError("Campaign", campaign_id)
        return campaign

    def create_campaign(self, data: CampaignCreate, admin_id: Optional[int] = None) -> Campaign:
        validate_campaign_rules(data.type, data.value, data.start_date, data.end_date)

        with db_cursor() as cursor:
            base = slugify(data.name) or "campaign"
            fields = data.model_dump()
            fields["type"] = data.type.value
            fields["slug"] = unique_slug(base, lambda s: self.repo.slug_exists(s, cursor=cursor))
            campaign = self.repo.create(fields, cursor=cursor)

        self.system_logs.log_info(
            "CAMPAIGN_CREATED", f"Campaign {campaign.name} created",
            user_id=admin_id, metadata={"campaign_id": campaign.id},
        )
        return campaign

    def update_campaign(self, campaign_id: int, data: CampaignUpdate, admin_id: Optional[int] = None) -> Campaign:
        fields = data.model_dump(exclude_unset=True)
        with db_cursor() as cursor:
            existing = self.repo.find_by_id(campaign_id, cursor=cursor)
            if not existing:
                raise NotFoundError("Campaign", campaign_id)

            if fields.get("type") is not None:
                fields["type"] = CampaignType(fields["type"]).value
            validate_campaign_rules(
                fields.get("type") or existing.type,
                fields.get("value", existing.value),
                fields.get("start_date") or existing.start_date,
                fields.get("end_date") or existing.end_date,
            )

            if fields.get("name") and fields["name"] != existing.name:
                base = slugify(fields["name"]) or "campaign"
                fields["slug"] = unique_slug(
                    base, lambda s: self.repo.slug_exists(s, exclude_id=campaign_id, cursor=cursor)
                )

            campaign = self.repo.update(campaign_id, fields, cursor=cursor)

        self.system_logs.log_info(
            "CAMPAIGN_UPDATED", f"Campaign {campaign.name} updated",
            user_id=admin_id, metadata={"campaign_id": campaign_id, "fields": sorted(fields)},
        )
        return campaign

    def delete_campaign(self, campaign_id: int, admin_id: Optional[int] = None) -> Campaign:
        campaign = self.get_campaign(campaign_id)
        self.repo.delete(campaign_id)
        self.system_logs.log_info(
            "CAMPAIGN_DELETED", f"Campaign {campaign.name} deleted",
            user_id=admin_id, metadata={"campaign_id": campaign_id},
        )
        return campaign
