# Overview: Flask API routes for shift sessions; open, close, approve and reopen.

# backend/barflow/routes/sessions.py
"""
Shift Session API Routes

DESIGN:
- Shift lifecycle: open -> close -> (approve) ; admin reopen with reason
- The close response carries the computed sales report

SECURITY:
- Any logged-in user can open and close a shift
- Approve and reopen are admin only (403)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import shift_service
from ..decorators import require_auth, require_admin
from .errors import DOMAIN_ERRORS, error_response, internal_error


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


@sessions_bp.get("")
@require_auth
def list_sessions_route():
    """Query params: status (OPEN|CLOSED|PENDING_APPROVAL), limit."""
    status = request.args.get("status")
    limit = request.args.get("limit", type=int)
    sessions = shift_service.list_sessions(status=status, limit=limit)
    return jsonify({"items": [s.to_dict() for s in sessions], "count": len(sessions)}), 200


@sessions_bp.get("/active")
@require_auth
def active_session_route():
    session = shift_service.get_active_session()
    return jsonify({"session": session.to_dict() if session else None}), 200


@sessions_bp.get("/<int:session_id>")
@require_auth
def get_session_route(session_id: int):
    try:
        session = shift_service.get_session(session_id)
        return jsonify({"session": session.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@sessions_bp.post("")
@require_auth
def open_session_route():
    """
    Open a shift.

    Request body (optional):
    {"initial_inventory": [{"product_id": 1, "count": 24}, ...]}
    Omit initial_inventory to open from the last closing count.
    """
    try:
        data = request.get_json(silent=True) or {}
        session = shift_service.open_shift(
            user=g.current_user,
            initial_inventory=data.get("initial_inventory"),
        )
        return jsonify({"session": session.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return internal_error()


@sessions_bp.post("/<int:session_id>/close")
@require_auth
def close_session_route(session_id: int):
    """
    Close a shift.

    Request body:
    {
        "final_inventory": [{"product_id": 1, "count": 18}, ...],
        "real_cash_cents": 27500,
        "observation": "optional note"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        session = shift_service.close_shift(
            session_id=session_id,
            user=g.current_user,
            final_inventory=data.get("final_inventory"),
            real_cash_cents=data.get("real_cash_cents"),
            observation=data.get("observation"),
        )
        return jsonify({"session": session.to_dict(), "sales_report": session.sales_report}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return internal_error()


@sessions_bp.post("/<int:session_id>/approve")
@require_auth
@require_admin
def approve_session_route(session_id: int):
    try:
        session = shift_service.approve_shift(session_id=session_id, admin=g.current_user)
        return jsonify({"session": session.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve shift")
        return internal_error()


@sessions_bp.post("/<int:session_id>/reopen")
@require_auth
@require_admin
def reopen_session_route(session_id: int):
    """Request body: {"reason": "Recount requested"}"""
    try:
        data = request.get_json(silent=True) or {}
        session = shift_service.reopen_shift(
            session_id=session_id,
            admin=g.current_user,
            reason=data.get("reason"),
        )
        return jsonify({"session": session.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reopen shift")
        return internal_error()
