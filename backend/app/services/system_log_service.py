"""
System Log Service
Writes and queries the system_logs audit trail

Writing an audit row must never break the business flow that triggered it,
so log() swallows database errors after reporting them to the process log.

Author: TM3
Date: 2025-11-21
"""
import logging
import math
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from fastapi import Request

from app.core.rate_limit import get_client_ip as _request_ip
from app.domain.operations import SystemLogType
from app.repositories.system_log_repository import SystemLogRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def get_client_ip(request: Optional[Request]) -> Optional[str]:
    """First X-Forwarded-For entry, else the socket peer"""
    if request is None:
        return None
    return _request_ip(request)


class SystemLogService:

    def __init__(self, repository: Optional[SystemLogRepository] = None):
        self.repo = repository or SystemLogRepository()

    def log(
        self,
        type: SystemLogType,
        action: str,
        description: str,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[int]:
        """
        Insert an audit row

        Returns:
            New log id, or None when the insert failed
        """
        try:
            return self.repo.create(
                type=SystemLogType(type).value,
                action=action,
                description=description,
                user_id=user_id,
                ip_address=ip_address,
                metadata=metadata,
            )
        except Exception as e:
            logger.error(f"Failed to write system log {action}: {e}")
            return None

    def log_info(self, action: str, description: str, **kwargs) -> Optional[int]:
        return self.log(SystemLogType.INFO, action, description, **kwargs)

    def log_warning(self, action: str, description: str, **kwargs) -> Optional[int]:
        return self.log(SystemLogType.WARNING, action, description, **kwargs)

    def log_error(self, action: str, description: str, **kwargs) -> Optional[int]:
        return self.log(SystemLogType.ERROR, action, description, **kwargs)

    def list_logs(
        self,
        page: int = 1,
        page_size: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        type: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> dict:
        """
        Paginated log listing

        end_date is inclusive: a bare date covers the whole day up to
        23:59:59.999999.
        """
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        if end_date is not None and end_date.time() == time(0, 0):
            end_date = datetime.combine(end_date.date(), time.max, tzinfo=end_date.tzinfo)

        logs, total = self.repo.find_all(
            type=type,
            action=action,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=page_size,
            offset=(page - 1) * page_size,
        )

        total_pages = math.ceil(total / page_size) if total else 0
        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": total_pages,
            "has_more": page < total_pages,
        }

    def delete_older_than(self, days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        deleted = self.repo.delete_older_than(cutoff)
        logger.info(f"Deleted {deleted} system logs older than {days} days")
        return deleted
