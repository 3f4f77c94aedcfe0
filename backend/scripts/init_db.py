#!/usr/bin/env python3
"""
Automatic database initialization script.
Waits for the database and runs migrations on first startup.
"""

import subprocess
import sys
import time
import logging
from pathlib import Path

# Add parent directory to path
BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import text, inspect
from sqlalchemy.exc import SQLAlchemyError
from app.core.database import engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("users", "templates", "documents")


def wait_for_db(max_retries=30, delay=2.0, bind=None):
    """Wait for database to be ready."""
    bind = bind or engine
    logger.info("Waiting for database to be ready...")

    for i in range(max_retries):
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("✓ Database is ready")
            return True
        except SQLAlchemyError as e:
            if i < max_retries - 1:
                logger.info(f"Database not ready yet, waiting... ({i+1}/{max_retries})")
                time.sleep(delay)
            else:
                logger.error(f"Database not ready after {max_retries} attempts: {e}")

    return False


def check_tables_exist(bind=None):
    """Check if the application tables exist."""
    try:
        tables = inspect(bind or engine).get_table_names()
    except SQLAlchemyError as e:
        logger.error(f"Error checking tables: {e}")
        return False

    missing_tables = [t for t in REQUIRED_TABLES if t not in tables]
    if missing_tables:
        logger.info(f"Missing tables: {missing_tables}")
        return False

    logger.info(f"✓ All required tables exist ({len(tables)} total)")
    return True


def run_migrations(cwd=BACKEND_DIR):
    """Run Alembic migrations."""
    logger.info("Running database migrations...")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=60
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.error(f"Error running migrations: {e}")
        return False

    if result.returncode == 0:
        logger.info("✓ Migrations completed successfully")
        logger.debug(result.stdout)
        return True

    logger.error(f"Migration failed: {result.stderr}")
    return False


def main():
    """Main initialization function."""
    logger.info("=" * 60)
    logger.info("DATABASE INITIALIZATION")
    logger.info("=" * 60)

    # Step 1: Wait for database
    if not wait_for_db():
        logger.error("Failed to connect to database")
        sys.exit(1)

    # Step 2: Migrate (always, to stay at head)
    if not check_tables_exist():
        logger.info("Tables missing, running migrations...")
    if not run_migrations():
        logger.error("Migration failed")
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("DATABASE INITIALIZATION COMPLETE")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
