#!/usr/bin/env python3
"""
Run database migrations.

Applies every SQL file in db/migrations in name order, handling already-applied
objects gracefully.

Usage:
    python scripts/run_migrations.py [--database-url URL] [--verbose]
"""

import argparse
import logging
import sys
from pathlib import Path

import psycopg2

from fulfillment.shared.settings import build_db_connection_string

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "db" / "migrations"


def get_db_connection(database_url: str | None = None) -> psycopg2.extensions.connection:
    """Get an autocommit database connection (DATABASE_URL / POSTGRES_* by default)."""
    try:
        conn = psycopg2.connect(database_url or build_db_connection_string())
        conn.autocommit = True  # Each statement executes immediately
        return conn
    except psycopg2.Error as e:
        logger.error(f"Failed to connect to database: {e}")
        sys.exit(1)


def discover_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """Migration files in the order they must run."""
    return sorted(migrations_dir.glob("*.sql"))


def run_migration(conn: psycopg2.extensions.connection, migration_file: Path, verbose: bool = False) -> bool:
    """Run a single migration file.

    Args:
        conn: Database connection
        migration_file: Path to migration SQL file
        verbose: If True, show detailed information

    Returns:
        True if migration succeeded, False otherwise
    """
    if not migration_file.exists():
        logger.warning(f"Migration file not found: {migration_file}")
        return False

    migration_sql = migration_file.read_text(encoding="utf-8")

    if verbose:
        logger.info(f"Running migration: {migration_file.name}")

    try:
        with conn.cursor() as cur:
            cur.execute(migration_sql)
    except (
        psycopg2.errors.DuplicateTable,
        psycopg2.errors.DuplicateObject,
        psycopg2.errors.DuplicateColumn,
    ) as e:
        if verbose:
            logger.info(f"Migration already applied (skipped): {migration_file.name} - {e}")
        return True
    except psycopg2.Error as e:
        logger.error(f"Migration failed: {migration_file.name} - {e}")
        return False

    if verbose:
        logger.info(f"Migration completed: {migration_file.name}")
    return True


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run database migrations")
    parser.add_argument(
        "--database-url", "-d", help="PostgreSQL URL (default: DATABASE_URL / POSTGRES_* env vars)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show detailed information")

    args = parser.parse_args()

    migration_files = discover_migrations()
    if not migration_files:
        logger.warning(f"No migrations found in {MIGRATIONS_DIR}")
        sys.exit(0)

    conn = get_db_connection(args.database_url)
    try:
        results = {
            migration_file.name: run_migration(conn, migration_file, args.verbose)
            for migration_file in migration_files
        }
    finally:
        conn.close()

    # Summary
    total = len(results)
    passed = sum(1 for v in results.values() if v)

    logger.info(f"Summary: {passed}/{total} migrations succeeded")

    if passed < total:
        logger.warning("Failed migrations:")
        for name, status in results.items():
            if not status:
                logger.warning(f"  - {name}: FAILED")
        sys.exit(1)

    logger.info("All migrations completed successfully!")


if __name__ == "__main__":
    main()
