"""
PostgreSQL access for SplitPal.
Short-lived psycopg2 connections per call, with dict rows.
"""

import logging
from typing import Dict, List, Optional, Any, Sequence
from contextlib import contextmanager
from urllib.parse import urlparse

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine, inspect

from .. import config
from .models import metadata

logger = logging.getLogger(__name__)


def build_dsn(database_url: str = None) -> str:
    """
    Resolve the connection URL from DATABASE_URL or the POSTGRES_* settings.

    Raises:
        ValueError: when neither form is configured
    """
    database_url = database_url or config.DATABASE_URL
    if database_url:
        # SQLAlchemy no longer accepts the legacy postgres:// scheme
        if database_url.startswith('postgres://'):
            database_url = 'postgresql://' + database_url[len('postgres://'):]
        return database_url

    if not (config.POSTGRES_USER and config.POSTGRES_PASSWORD):
        raise ValueError("Database credentials not found. Set DATABASE_URL or POSTGRES_USER/POSTGRES_PASSWORD")
    return (
        f"postgresql://{config.POSTGRES_USER}:{config.POSTGRES_PASSWORD}"
        f"@{config.POSTGRES_HOST}:{config.POSTGRES_PORT}/{config.POSTGRES_DB}"
    )


class DatabaseManager:
    """
    Database manager for SplitPal using PostgreSQL.

    Queries go through psycopg2 with positional ``%s`` parameters and
    RealDictCursor rows; SQLAlchemy owns the schema (``init_schema``).
    """

    def __init__(self, database_url: str = None):
        self.dsn = build_dsn(database_url)
        # SQLAlchemy engine is only used for schema management
        self.engine = create_engine(self.dsn, echo=False, pool_pre_ping=True)

        parsed = urlparse(self.dsn)
        logger.info(f"Database manager ready for {parsed.hostname}:{parsed.port or 5432}{parsed.path}")

    @contextmanager
    def get_connection(self):
        """Open a connection for one unit of work and always close it."""
        conn = psycopg2.connect(self.dsn)
        try:
            yield conn
        except psycopg2.Error as e:
            logger.error(f"Database error: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """
        Yield a RealDictCursor whose statements commit together.

        Any exception rolls the whole unit back.
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a query and return every row as a dict."""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, tuple(params))
                return [dict(row) for row in cursor.fetchall()]

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Run a query and return the first row, or None."""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, tuple(params))
                row = cursor.fetchone()
                return dict(row) if row else None

    def execute(self, query: str, params: Sequence[Any] = ()) -> Any:
        """
        Run a write statement and commit.

        Returns:
            The RETURNING row as a dict when the statement has one,
            otherwise the number of affected rows.
        """
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, tuple(params))
                result = cursor.rowcount
                if cursor.description is not None:
                    row = cursor.fetchone()
                    result = dict(row) if row else None
            conn.commit()
            return result

    def init_schema(self) -> List[str]:
        """
        Create every table and index that does not exist yet.

        Returns:
            list: Table names present after creation
        """
        metadata.create_all(self.engine)
        tables = inspect(self.engine).get_table_names()
        logger.info(f"Schema ready with tables: {', '.join(sorted(tables))}")
        return tables

    def test_connection(self) -> bool:
        """
        Test database connection.
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("SELECT 1")
            logger.info("Database connection test successful")
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False


_db_manager: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """
    Get the process-wide database manager instance.
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
