"""
API tests for /api/v1/system-logs

Author: TM3
Date: 2025-11-21
"""
from unittest.mock import patch

from app.core.exceptions import ValidationError


class TestSystemLogsApi:

    def test_requires_admin(self, client, user_headers):
        assert client.get("/api/v1/system-logs/", headers=user_headers).status_code == 403

    @patch("app.api.system_logs.SystemLogService")
    def test_listing_envelope(self, mock_service, client, admin_headers):
        mock_service.return_value.list_logs.return_value = {
            "logs": [], "total": 0, "page": 1, "page_size": 20, "total_pages": 0, "has_more": False,
        }

        response = client.get("/api/v1/system-logs/?type=ERROR", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["has_more"] is False
        assert mock_service.return_value.list_logs.call_args[1]["type"] == "ERROR"

    @patch("app.api.system_logs.SystemLogService")
    def test_typed_errors_keep_their_status(self, mock_service, client, admin_headers):
        mock_service.return_value.list_logs.side_effect = ValidationError("Unknown log type: DEBUG")

        response = client.get("/api/v1/system-logs/?type=DEBUG", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown log type: DEBUG"

    @patch("app.api.system_logs.SystemLogService")
    def test_delete_typed_error_is_not_wrapped(self, mock_service, client, admin_headers):
        mock_service.return_value.delete_older_than.side_effect = ValidationError("days must be positive")

        response = client.delete("/api/v1/system-logs/older-than/30", headers=admin_headers)

        assert response.status_code == 400

    @patch("app.api.system_logs.SystemLogService")
    def test_unexpected_error_is_500(self, mock_service, client, admin_headers):
        mock_service.return_value.delete_older_than.side_effect = RuntimeError("connection lost")

        response = client.delete("/api/v1/system-logs/older-than/30", headers=admin_headers)

        assert response.status_code == 500
        assert "connection lost" in response.json()["detail"]
