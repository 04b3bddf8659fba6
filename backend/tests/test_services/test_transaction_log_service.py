"""
Unit tests for TransactionLogService

Author: TM3
Date: 2025-11-21
"""
from unittest.mock import MagicMock

import pytest

from app.domain.operations import TransactionStatus, TransactionType
from app.services.transaction_log_service import TransactionLogService


@pytest.fixture
def repo():
    return MagicMock()


@pytest.fixture
def service(repo):
    return TransactionLogService(repository=repo)


def test_create_stores_enum_values(service, repo):
    service.create(TransactionType.COUPON_USAGE, TransactionStatus.RESERVED, user_id=7, reference_id=3)

    kwargs = repo.create.call_args[1]
    assert kwargs["type"] == "COUPON_USAGE"
    assert kwargs["status"] == "RESERVED"


def test_mark_all_continues_after_failure(service, repo):
    repo.update_status.side_effect = [RuntimeError("lost"), True]

    service.mark_all([1, 2], TransactionStatus.COMPLETED, order_id=42)

    assert repo.update_status.call_count == 2
    assert repo.update_status.call_args[0] == (2, "COMPLETED")
    assert repo.update_status.call_args[1]["order_id"] == 42


def test_lookup_by_key_filters_status(service, repo):
    service.find_by_idempotency_key("key-1", status=TransactionStatus.COMPLETED)

    repo.find_by_idempotency_key.assert_called_once_with("key-1", type=None, status="COMPLETED", cursor=None)


def test_list_for_user(service, repo):
    repo.find_by_user.return_value = []

    assert service.list_for_user(7, limit=10) == []
    repo.find_by_user.assert_called_once_with(7, limit=10)
