"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.
Uses psycopg2's SimpleConnectionPool for efficient connection reuse.
"""

from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import pool

from config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.SimpleConnectionPool | None = None


def init_pool(
    dsn: str = DATABASE_URL, min_conn: int = DB_POOL_MIN, max_conn: int = DB_POOL_MAX
) -> None:
    """
    Initialize the database connection pool.

    Args:
        dsn: PostgreSQL connection string.
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.SimpleConnectionPool(min_conn, max_conn, dsn)
        logger.info("Database connection pool initialized successfully.")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise


def get_connection():
    """
    Get a connection from the pool.

    Returns:
        A psycopg2 connection object.

    Raises:
        RuntimeError: If the pool has not been initialized.
        TransientIOError: If the pool cannot hand out a connection.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    try:
        return _pool.getconn()
    except (pool.PoolError, psycopg2.OperationalError) as e:
        logger.error(f"Could not get a database connection: {e}")
        raise TransientIOError("Database unavailable") from e


def release_connection(conn) -> None:
    """
    Return a connection back to the pool.

    Args:
        conn: The psycopg2 connection to release.
    """
    if _pool is not None:
        _pool.putconn(conn)


@contextmanager
def transaction(action: str) -> Iterator:
    """
    Run several statements as one unit of work.

    Commits when the block exits normally. On a database error the
    transaction is rolled back and TransientIOError is raised, so either
    every statement in the block is applied or none is.

    Args:
        action: Short description used in the error log.

    Yields:
        A psycopg2 cursor.
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise TransientIOError(f"Failed to {action}") from e
    finally:
        release_connection(conn)


def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")
