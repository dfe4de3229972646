# backend/jewelstock/routes/system.py
"""
System health and version endpoints.
"""

import time
from importlib.metadata import PackageNotFoundError, version as package_version

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Shop, SessionToken, StockTransaction
from jewelstock.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.
    """
    start_time = time.time()
    try:
        shop_count = db.session.query(Shop).count()
        txn_count = db.session.query(StockTransaction).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked == False,  # noqa: E712
            SessionToken.expires_at >= utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "shops": shop_count,
                "stock_transactions": txn_count,
                "active_sessions": active_sessions,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    start_time = time.time()
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {"database": database_health},
    }, http_status


@system_bp.get("/api/version")
def version():
    try:
        current = package_version("jewelstock")
    except PackageNotFoundError:
        current = "unknown"
    return {"name": "jewelstock", "version": current}
