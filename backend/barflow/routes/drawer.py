# Overview: Flask API routes for the cash drawer; manual open, status, logs and alerts.

# backend/barflow/routes/drawer.py
"""
Cash Drawer API Routes

SECURITY:
- Manual opens are logged; an employee open without a reason raises an
  UNAUTHORIZED_OPEN alert
- Acknowledging alerts is admin only
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import alerts_service
from ..decorators import require_auth, require_admin
from ..time_utils import day_bounds, parse_iso_date
from .errors import DOMAIN_ERRORS, error_response, internal_error


drawer_bp = Blueprint("drawer", __name__, url_prefix="/api/drawer")


def _drawer():
    return current_app.extensions.get("cash_drawer")


@drawer_bp.post("/open")
@require_auth
def open_drawer_route():
    """Request body (optional): {"reason": "Change for the bartender"}"""
    try:
        data = request.get_json(silent=True) or {}
        log = alerts_service.manual_open(user=g.current_user, reason=data.get("reason"), drawer=_drawer())
        return jsonify({"log": log.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open cash drawer")
        return internal_error()


@drawer_bp.get("/status")
@require_auth
def drawer_status_route():
    drawer = _drawer()
    if drawer is None:
        return jsonify({"connected": False, "simulation": True, "port": None, "is_open": False}), 200
    return jsonify(drawer.status()), 200


@drawer_bp.get("/logs")
@require_auth
@require_admin
def drawer_logs_route():
    """Query params: date (YYYY-MM-DD, optional), limit."""
    try:
        raw = request.args.get("date")
        day = parse_iso_date(raw) if raw else None
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    start, end = day_bounds(day) if day else (None, None)
    limit = request.args.get("limit", default=200, type=int)
    logs = alerts_service.list_drawer_logs(start=start, end=end, limit=limit)
    return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)}), 200


@drawer_bp.get("/alerts")
@require_auth
@require_admin
def list_alerts_route():
    """Query params: acknowledged (true|false), severity, type."""
    raw_ack = request.args.get("acknowledged")
    acknowledged = None if raw_ack is None else raw_ack.lower() == "true"
    alerts = alerts_service.list_alerts(
        acknowledged=acknowledged,
        severity=request.args.get("severity"),
        alert_type=request.args.get("type"),
    )
    return jsonify({"items": [a.to_dict() for a in alerts], "count": len(alerts)}), 200


@drawer_bp.post("/alerts/<int:alert_id>/acknowledge")
@require_auth
@require_admin
def acknowledge_alert_route(alert_id: int):
    try:
        alert = alerts_service.acknowledge_alert(alert_id=alert_id, admin=g.current_user)
        return jsonify({"alert": alert.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to acknowledge alert")
        return internal_error()
