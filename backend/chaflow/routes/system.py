# backend/chaflow/routes/system.py
"""
System health endpoint.

A database failure reports "degraded" instead of crashing; the same payload
shape is used by the app-wide OperationalError handler.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import SellerSession
from chaflow.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        active_sessions = db.session.query(SellerSession).filter(
            SellerSession.expires_at > utcnow()
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_sessions": active_sessions},
        }
    except Exception:
        db.session.rollback()
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
    degraded = database["status"] != "healthy"
    return {
        "status": "degraded" if degraded else "healthy",
        "degraded": degraded,
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }, 503 if degraded else 200
