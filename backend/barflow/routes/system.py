# backend/barflow/routes/system.py
"""
System health and version endpoints.

Health reports database reachability and the cash drawer connection so the
bar can see at a glance whether the till is running on hardware.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import User, ShiftSession
from ..models.shifts import STATUS_OPEN
from barflow.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        open_shifts = db.session.query(ShiftSession).filter_by(status=STATUS_OPEN).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "open_shifts": open_shifts,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_drawer_health() -> dict:
    drawer = current_app.extensions.get("cash_drawer")
    if drawer is None:
        return {"status": "degraded", "warning": "Cash drawer service not started"}
    status = drawer.status()
    if drawer.is_simulation:
        return {"status": "degraded", "warning": "Cash drawer in simulation mode", "details": status}
    if not drawer.is_connected:
        return {"status": "degraded", "warning": "Cash drawer disconnected", "details": status}
    return {"status": "healthy", "details": status}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (drawer simulated/disconnected)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    drawer_health = check_drawer_health()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif drawer_health["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "cash_drawer": drawer_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
