"""
Transaction Log Service
Tracks the lifecycle of promotion redemptions (coupon, gift card, campaign)

A checkout creates RESERVED rows before it touches balances, then moves
them to COMPLETED or FAILED. A COMPLETED row keyed by an idempotency key
lets a retried checkout return the original result.
"""
import logging
from typing import List, Optional

from app.domain.operations import TransactionLog, TransactionStatus, TransactionType
from app.repositories.transaction_log_repository import TransactionLogRepository

logger = logging.getLogger(__name__)


class TransactionLogService:

    def __init__(self, repository: Optional[TransactionLogRepository] = None):
        self.repo = repository or TransactionLogRepository()

    def create(
        self,
        type: TransactionType,
        status: TransactionStatus,
        user_id: Optional[int] = None,
        reference_id: Optional[int] = None,
        amount=None,
        idempotency_key: Optional[str] = None,
        metadata: Optional[dict] = None,
        cursor=None,
    ) -> TransactionLog:
        return self.repo.create(
            type=TransactionType(type).value,
            status=TransactionStatus(status).value,
            user_id=user_id,
            reference_id=reference_id,
            amount=amount,
            idempotency_key=idempotency_key,
            metadata=metadata,
            cursor=cursor,
        )

    def update_status(
        self,
        log_id: int,
        status: TransactionStatus,
        error_message: Optional[str] = None,
        order_id: Optional[int] = None,
        metadata: Optional[dict] = None,
        cursor=None,
    ) -> bool:
        updated = self.repo.update_status(
            log_id,
            TransactionStatus(status).value,
            error_message=error_message,
            order_id=order_id,
            metadata=metadata,
            cursor=cursor,
        )
        if not updated:
            logger.warning(f"Transaction log {log_id} not found for status {status}")
        return updated

    def mark_all(self, log_ids: List[int], status: TransactionStatus, **kwargs):
        """Move several logs to the same status; failures are logged, not raised"""
        for log_id in log_ids:
            try:
                self.update_status(log_id, status, **kwargs)
            except Exception as e:
                logger.error(f"Could not set transaction log {log_id} to {status}: {e}")

    def find_by_idempotency_key(
        self,
        key: str,
        type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        cursor=None,
    ) -> Optional[TransactionLog]:
        return self.repo.find_by_idempotency_key(
            key,
            type=TransactionType(type).value if type else None,
            status=TransactionStatus(status).value if status else None,
            cursor=cursor,
        )

    def list_for_user(self, user_id: int, limit: int = 50) -> List[TransactionLog]:
        return self.repo.find_by_user(user_id, limit=limit)
