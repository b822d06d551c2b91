import logging
import os

import psycopg2
from flask import Blueprint, jsonify

from backend.utils.services import get_database

logger = logging.getLogger(__name__)
system_bp = Blueprint("system", __name__)


@system_bp.route("/api/health")
def api_health():
    """Health check endpoint."""
    try:
        db = get_database()
        with db.get_cursor() as cur:
            cur.execute("SELECT 1")
        db_status = "healthy"
    except psycopg2.Error as e:
        logger.warning(f"Health check database error: {e}")
        db_status = "unhealthy"

    return jsonify(
        {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "database": db_status,
            "environment": os.getenv("ENVIRONMENT", "development"),
        }
    )
