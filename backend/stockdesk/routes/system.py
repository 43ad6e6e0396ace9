# backend/stockdesk/routes/system.py
"""
System health and welcome endpoints.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial query.

    Returns dict with status and latency.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return {
        "success": healthy,
        "message": "Inventory Management System API is running",
        "timestamp": to_utc_z(utcnow()),
        "version": current_app.config["API_VERSION"],
        "database": database,
    }, 200 if healthy else 503


@system_bp.get("/")
def index():
    return {
        "message": "Welcome to Inventory Management System API",
        "version": current_app.config["API_VERSION"],
        "endpoints": {
            "health": "/api/health",
            "auth": "/api/auth",
            "products": "/api/products",
            "sales": "/api/sales",
            "users": "/api/users",
        },
    }
