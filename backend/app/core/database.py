"""
PostgreSQL database access

This module centralizes ALL the ways the application reaches the database:
- SQLAlchemy engine + declarative Base (schema definition, table creation)
- psycopg2 direct connections (raw SQL queries in repositories)
- db_cursor() context manager (transaction scope shared across repositories)

Author: TM3
Updated: 2025-11-20
"""
import time
import logging
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)

# Seconds before a connection attempt gives up
CONNECTION_TIMEOUT = 10


# ============================================================================
# SQLAlchemy Configuration (schema models)
# ============================================================================

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

Base = declarative_base()


def init_db(bind=None):
    """
    Create every table declared in app.models

    Safe to run repeatedly: existing tables are left untouched.
    """
    # Registers all models on Base.metadata
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info(f"Database schema ready ({len(Base.metadata.tables)} tables)")


# ============================================================================
# psycopg2 Direct Connections (raw SQL)
# ============================================================================

def get_db_connection_dict():
    """
    Get a database connection with RealDictCursor (returns dictionaries)

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM orders")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    return psycopg2.connect(database_url, cursor_factory=RealDictCursor)


@contextmanager
def db_cursor(cursor=None):
    """
    Yield a RealDictCursor bound to a transaction

    When a cursor is passed in, it is yielded as-is and the caller keeps
    ownership of commit/rollback. Otherwise a new connection is opened,
    committed on success, rolled back on error and always closed.

    Usage:
        with db_cursor() as cursor:
            order = order_repo.create(data, cursor=cursor)
            stock_repo.decrement(variant_id, qty, cursor=cursor)
    """
    if cursor is not None:
        yield cursor
        return

    conn = get_db_connection_dict()
    own_cursor = conn.cursor()
    try:
        yield own_cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        own_cursor.close()
        conn.close()


# ============================================================================
# Database Connection with Retry Logic
# ============================================================================

def get_db_connection_with_retry(max_retries=3, retry_delay=1.0, cursor_factory=None):
    """
    Get a psycopg2 connection with automatic retry on connection failures

    - Retries failed connections up to max_retries times
    - Exponential backoff between retries
    - Logs each attempt

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)
        cursor_factory: Optional cursor factory (e.g. RealDictCursor)

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            if cursor_factory is not None:
                conn = psycopg2.connect(
                    database_url, cursor_factory=cursor_factory, connect_timeout=CONNECTION_TIMEOUT
                )
            else:
                conn = psycopg2.connect(database_url, connect_timeout=CONNECTION_TIMEOUT)

            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

    raise last_error if last_error else Exception("Connection failed after all retries")
