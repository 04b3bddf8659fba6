"""
Tests for JWT handling and role checks

Author: TM3
Date: 2025-11-21
"""
import asyncio

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth import (
    ROLE_ADMIN,
    TokenUser,
    create_access_token,
    decode_token,
    get_current_user,
    get_current_user_optional,
    hash_password,
    require_admin,
    verify_password,
)


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokens:

    def test_round_trip_payload(self):
        token = create_access_token(42, "jane@example.com", name="Jane")

        payload = decode_token(token)

        assert payload["sub"] == "42"
        assert payload["id"] == 42
        assert payload["role"] == "USER"
        assert payload["exp"] > payload["iat"]

    def test_expired_token(self):
        token = create_access_token(42, "jane@example.com", expires_minutes=-1)

        with pytest.raises(HTTPException) as exc:
            decode_token(token)
        assert exc.value.status_code == 401
        assert exc.value.detail == "Token has expired"

    def test_tampered_token(self):
        token = create_access_token(42, "jane@example.com")
        with pytest.raises(HTTPException) as exc:
            decode_token(token[:-2] + "xx")
        assert exc.value.status_code == 401


class TestDependencies:

    def test_current_user_from_token(self):
        token = create_access_token(7, "jane@example.com", role=ROLE_ADMIN)

        user = asyncio.run(get_current_user(bearer(token)))

        assert user.id == 7
        assert user.is_admin

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(None))
        assert exc.value.status_code == 401

    def test_optional_user_ignores_bad_token(self):
        assert asyncio.run(get_current_user_optional(bearer("not-a-jwt"))) is None
        assert asyncio.run(get_current_user_optional(None)) is None

    def test_require_admin_rejects_users(self):
        user = TokenUser(id=7, email="jane@example.com")

        with pytest.raises(HTTPException) as exc:
            asyncio.run(require_admin(user=user))
        assert exc.value.status_code == 403

    def test_require_admin_accepts_admins(self):
        admin = TokenUser(id=1, email="admin@example.com", role=ROLE_ADMIN)
        assert asyncio.run(require_admin(user=admin)) is admin


def test_password_hashing():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
