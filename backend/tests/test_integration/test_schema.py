"""
Integration tests against a real PostgreSQL database

Set TEST_DATABASE_URL to run them; every test rolls back its changes.

Author: TM3
Date: 2025-11-22
"""
import os

import psycopg2
import pytest
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine

from app.core.database import init_db
from app.repositories.user_repository import UserRepository

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"),
]


@pytest.fixture(scope="module")
def schema():
    engine = create_engine(TEST_DATABASE_URL)
    init_db(bind=engine)
    yield
    engine.dispose()


@pytest.fixture
def cursor(schema):
    conn = psycopg2.connect(TEST_DATABASE_URL, cursor_factory=RealDictCursor)
    cur = conn.cursor()
    yield cur
    conn.rollback()
    cur.close()
    conn.close()


def test_user_round_trip(cursor):
    repo = UserRepository()

    created = repo.create("Jane", "Doe", "jane.integration@example.com", "hash", cursor=cursor)
    found = repo.find_by_email("JANE.INTEGRATION@example.com", cursor=cursor)

    assert found.id == created.id
    assert found.role == "USER"
