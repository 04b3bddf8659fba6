"""
Unit tests for SystemLogService

Author: TM3
Date: 2025-11-21
"""
from datetime import datetime, time
from unittest.mock import MagicMock

import pytest

from app.domain.operations import SystemLogType
from app.services.system_log_service import SystemLogService, get_client_ip


@pytest.fixture
def repo():
    repository = MagicMock()
    repository.find_all.return_value = ([], 0)
    return repository


@pytest.fixture
def service(repo):
    return SystemLogService(repository=repo)


class TestWrite:

    def test_log_info_writes_row(self, service, repo):
        repo.create.return_value = 11

        log_id = service.log_info("ORDER_DELETED", "Order ORD-1 deleted", user_id=1, metadata={"order_id": 3})

        assert log_id == 11
        kwargs = repo.create.call_args[1]
        assert kwargs["type"] == "INFO"
        assert kwargs["action"] == "ORDER_DELETED"
        assert kwargs["metadata"] == {"order_id": 3}

    def test_database_errors_never_propagate(self, service, repo):
        repo.create.side_effect = RuntimeError("connection lost")

        assert service.log_error("CHECKOUT_FAILED", "boom") is None

    def test_type_is_normalized(self, service, repo):
        service.log("WARNING", "X", "y")
        assert repo.create.call_args[1]["type"] == SystemLogType.WARNING.value


class TestList:

    def test_paging_metadata(self, service, repo):
        repo.find_all.return_value = (["a", "b"], 45)

        result = service.list_logs(page=2, page_size=20)

        assert result["total_pages"] == 3
        assert result["has_more"] is True
        assert repo.find_all.call_args[1]["offset"] == 20

    def test_page_size_is_capped(self, service, repo):
        result = service.list_logs(page_size=500)

        assert result["page_size"] == 100
        assert result["total_pages"] == 0
        assert result["has_more"] is False

    def test_bare_end_date_covers_whole_day(self, service, repo):
        service.list_logs(end_date=datetime(2025, 11, 20))

        end_date = repo.find_all.call_args[1]["end_date"]
        assert end_date.date() == datetime(2025, 11, 20).date()
        assert end_date.time() == time.max

    def test_delete_older_than(self, service, repo):
        repo.delete_older_than.return_value = 7
        assert service.delete_older_than(30) == 7


def test_client_ip_prefers_forwarded_header():
    request = MagicMock()
    request.headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}
    assert get_client_ip(request) == "203.0.113.9"
    assert get_client_ip(None) is None
