#!/usr/bin/env python3
"""
Database initialization script for SplitPal.
Creates the tables and indexes the bot needs.
"""

import sys
import logging

from splitpal.core.database import DatabaseManager
from splitpal.config import DATABASE_URL, POSTGRES_HOST, POSTGRES_DB, POSTGRES_USER

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def test_database_connection(db: DatabaseManager) -> bool:
    """Test database connection."""
    logger.info("Testing database connection...")
    if db.test_connection():
        logger.info("✅ Database connection test passed")
        return True
    logger.error("❌ Database connection test failed")
    return False


def show_database_info(db: DatabaseManager):
    """Show database information."""
    logger.info("Database Information:")
    if DATABASE_URL:
        logger.info("Using DATABASE_URL")
    else:
        logger.info(f"Host: {POSTGRES_HOST}")
        logger.info(f"Database: {POSTGRES_DB}")
        logger.info(f"User: {POSTGRES_USER}")

    row = db.fetch_one("SELECT version() AS version")
    if row:
        logger.info(f"PostgreSQL Version: {row['version']}")


def init_database(db: DatabaseManager) -> bool:
    """Create every table and index."""
    try:
        logger.info("Creating SplitPal schema...")
        tables = db.init_schema()
        logger.info("Existing tables:")
        for table in sorted(tables):
            logger.info(f"  - {table}")
        return True

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        return False


def main():
    """Main initialization function."""
    logger.info("SplitPal Database Initialization Script")
    logger.info("=" * 50)

    try:
        db = DatabaseManager()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    if not test_database_connection(db):
        logger.error("Database connection failed. Please check your configuration.")
        sys.exit(1)

    show_database_info(db)

    if init_database(db):
        logger.info("✅ Database initialization completed successfully")
    else:
        logger.error("❌ Database initialization failed")
        sys.exit(1)

    logger.info("=" * 50)
    logger.info("SplitPal is ready to use!")


if __name__ == "__main__":
    main()
