"""
Environment-driven settings for the fulfillment services.

Values come from the process environment, optionally seeded from
``.env.<ENVIRONMENT>`` or ``.env`` at the repository root.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

repo_root = Path(__file__).resolve().parents[2]
environment = os.getenv("ENVIRONMENT", "development")
env_file = repo_root / f".env.{environment}"
if env_file.exists():
    load_dotenv(env_file, override=True)
else:
    load_dotenv()


def build_db_connection_string() -> str:
    """
    Build PostgreSQL connection string from environment variables.

    Checks DATABASE_URL first, then falls back to individual POSTGRES_* variables.

    Returns:
        PostgreSQL connection string
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db = os.getenv("POSTGRES_DB", "fulfillment_db")
    ssl_mode = os.getenv("POSTGRES_SSL_MODE", "")

    conn_str = f"postgresql://{user}:{password}@{host}:{port}/{db}"
    if ssl_mode:
        conn_str += f"?sslmode={ssl_mode}"
    return conn_str


def get_float(name: str, default: float) -> float:
    """Read a positive float from the environment, falling back to ``default``."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be > 0, using {default}")
        return default
    return value


def get_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, falling back to ``default``."""
    return int(get_float(name, float(default)))


NOTIFICATION_CHANNEL_TIMEOUT_SECONDS = get_float("NOTIFICATION_CHANNEL_TIMEOUT_SECONDS", 5.0)
NOTIFICATION_MAX_WORKERS = get_int("NOTIFICATION_MAX_WORKERS", 8)
DEFAULT_ESTIMATED_HOURS = get_float("DEFAULT_ESTIMATED_HOURS", 2.0)
