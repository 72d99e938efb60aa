"""
PostgreSQL (Supabase) database access

This module centralizes every way the backend talks to the database:
- SQLAlchemy ORM (schema definition, table creation, seeding)
- psycopg2 direct connections (raw SQL used by the repositories)
- Supabase client (storage buckets for product images)

Author: TM3
Updated: 2025-11-12
"""
import time
import logging
from functools import lru_cache

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from supabase import create_client, Client

from .config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# SQLAlchemy Configuration (schema / scripts)
# ============================================================================

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # Check the connection before handing it out
    pool_size=10,
    max_overflow=20,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# ============================================================================
# psycopg2 Direct Connections (raw SQL)
# ============================================================================

def _database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")
    return database_url


def get_db_connection_dict():
    """
    Get a psycopg2 connection with RealDictCursor (rows as dicts)

    This is what every repository uses, since rows map directly onto
    domain model fields.
    """
    return psycopg2.connect(_database_url(), cursor_factory=RealDictCursor)


# ============================================================================
# Connection with retry (SSL failure recovery)
# ============================================================================

def get_db_connection_with_retry(max_retries=3, retry_delay=1.0, cursor_factory=None):
    """
    Get a psycopg2 connection, retrying on transient connection failures

    Supabase's pooler occasionally drops SSL connections. Failed attempts
    are retried with exponential backoff (retry_delay, 2x, 4x...).

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)
        cursor_factory: Optional cursor factory (e.g. RealDictCursor)

    Returns:
        psycopg2 connection object

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = _database_url()
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            if cursor_factory is not None:
                conn = psycopg2.connect(database_url, cursor_factory=cursor_factory)
            else:
                conn = psycopg2.connect(database_url)

            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise last_error

    raise last_error if last_error else Exception("Connection failed after all retries")


# ============================================================================
# Supabase Client (storage)
# ============================================================================

@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Supabase client, created on first use

    Usage:
        @router.post("/upload")
        def upload(sb: Client = Depends(get_supabase)):
            ...
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise Exception("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
