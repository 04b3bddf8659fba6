"""
Pytest fixtures and configuration for the Storefront API tests

This file provides shared fixtures that can be used across all test modules.
No test here needs a database: repositories get mock cursors and services
get patched repositories.

Author: TM3
Date: 2025-10-17
Updated: 2025-11-21
"""
import os

# Settings are read at import time
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("AUTH_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.auth import ROLE_ADMIN, ROLE_USER, TokenUser, create_access_token


@pytest.fixture
def mock_cursor():
    """
    A RealDictCursor stand-in passed straight to repository methods

    Configure fetchone / fetchall return values per test.
    """
    cursor = MagicMock()
    cursor.rowcount = 1
    return cursor


@pytest.fixture(scope="session")
def client():
    from app.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user():
    return TokenUser(id=7, email="jane@example.com", name="Jane Doe", role=ROLE_USER)


@pytest.fixture
def admin():
    return TokenUser(id=1, email="admin@example.com", name="Admin", role=ROLE_ADMIN)


@pytest.fixture
def user_headers(user):
    token = create_access_token(user.id, user.email, role=user.role, name=user.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    token = create_access_token(admin.id, admin.email, role=admin.role, name=admin.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def sample_coupon_row(now):
    """
    Provides a coupons row as returned by RealDictCursor
    """
    return {
        "id": 3,
        "code": "SAVE10",
        "description": "10% off",
        "type": "PERCENTAGE",
        "value": Decimal("10"),
        "min_order_amount": Decimal("100.00"),
        "max_discount": Decimal("50.00"),
        "max_usage": 100,
        "usage_count": 4,
        "valid_from": now - timedelta(days=1),
        "valid_until": now + timedelta(days=30),
        "is_active": True,
        "created_at": now,
        "updated_at": None,
    }


@pytest.fixture
def sample_gift_card_row(now):
    return {
        "id": 9,
        "code": "GIFT1234ABCDEFGH",
        "initial_balance": Decimal("200.00"),
        "current_balance": Decimal("150.00"),
        "status": "ACTIVE",
        "user_id": 7,
        "expires_at": now + timedelta(days=90),
        "last_used": None,
        "note": None,
        "created_at": now,
        "updated_at": None,
        "user_email": "jane@example.com",
    }


@pytest.fixture
def sample_product_row(now):
    """
    Provides a PRODUCT_SELECT row
    """
    return {
        "id": 1,
        "name": "Leather Boot",
        "slug": "leather-boot",
        "description": "Winter boot",
        "base_price": Decimal("120.00"),
        "category_id": 2,
        "brand_id": 5,
        "published": True,
        "image_urls": ["https://cdn.example.com/boot.jpg"],
        "seo_title": None,
        "seo_description": None,
        "created_at": now,
        "updated_at": None,
        "category_name": "Shoes",
        "category_slug": "shoes",
        "brand_name": "Acme",
        "brand_slug": "acme",
    }
