# backend/orderpay/routes/system.py
"""
System health endpoint.

Unauthenticated; used by load balancers and deploy checks.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db, gateway_factory
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    payload = {
        "success": healthy,
        "status": "ok" if healthy else "degraded",
        "timestamp": to_utc_z(utcnow()),
        "version": current_app.config.get("APP_VERSION", "1.0.0"),
        "checks": {
            "database": database,
            "gateways": sorted(gateway_factory().get_available_gateways()),
        },
    }
    return jsonify(payload), 200 if healthy else 503
