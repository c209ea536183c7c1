# Overview: Flask API routes for accounting; expenses, payroll, purchases, monthly summary.

# backend/barflow/routes/accounting.py
"""
Accounting API Routes

SECURITY:
- Employees submit and list their own payroll hours
- Admins see everyone, approve/reject payroll, and read the monthly summary
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..services import accounting_service
from ..decorators import require_auth, require_admin
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import NotFoundError, ValidationError
from .errors import DOMAIN_ERRORS, error_response, internal_error


accounting_bp = Blueprint("accounting", __name__, url_prefix="/api/accounting")


# =============================================================================
# FIXED EXPENSES
# =============================================================================

@accounting_bp.get("/expenses")
@require_auth
@require_admin
def list_expenses_route():
    expenses = accounting_service.list_expenses()
    return jsonify({"items": [e.to_dict() for e in expenses], "count": len(expenses)}), 200


@accounting_bp.post("/expenses")
@require_auth
@require_admin
def create_expense_route():
    try:
        expense = accounting_service.create_expense(request.get_json(silent=True) or {})
        return jsonify({"expense": expense.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return internal_error()


@accounting_bp.put("/expenses/<int:expense_id>")
@require_auth
@require_admin
def update_expense_route(expense_id: int):
    try:
        expense = accounting_service.update_expense(expense_id, request.get_json(silent=True) or {})
        return jsonify({"expense": expense.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return internal_error()


@accounting_bp.delete("/expenses/<int:expense_id>")
@require_auth
@require_admin
def delete_expense_route(expense_id: int):
    try:
        accounting_service.delete_expense(expense_id)
        return jsonify({"ok": True}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


# =============================================================================
# PAYROLL
# =============================================================================

@accounting_bp.get("/payroll")
@require_auth
def list_payroll_route():
    """Query params: status, employee_id (admins only; employees always see their own)."""
    employee_id = request.args.get("employee_id", type=int)
    if not g.current_user.is_admin:
        employee_id = g.current_user.id
    shifts = accounting_service.list_work_shifts(employee_id=employee_id, status=request.args.get("status"))
    return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)}), 200


@accounting_bp.post("/payroll")
@require_auth
def submit_payroll_route():
    """
    Request body:
    {"date": "2026-03-07", "start_time": "18:00", "end_time": "02:00",
     "hourly_rate_cents": 800000, "surcharges_cents": 0,
     "employee_id": 3 (admin only; defaults to the caller)}
    """
    try:
        data = request.get_json(silent=True) or {}

        employee = g.current_user
        employee_id = data.get("employee_id")
        if employee_id is not None and employee_id != employee.id:
            if not employee.is_admin:
                return jsonify({"error": "Only an admin can submit hours for another employee"}), 403
            employee = db.session.get(User, employee_id)
            if not employee:
                raise NotFoundError("Employee not found")

        raw_date = data.get("date")
        try:
            work_date = parse_iso_datetime(raw_date) if raw_date else utcnow()
        except (TypeError, ValueError):
            raise ValidationError("date must be ISO-8601")

        shift = accounting_service.submit_work_shift(
            employee=employee,
            date=work_date,
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            hourly_rate_cents=data.get("hourly_rate_cents", 0),
            surcharges_cents=data.get("surcharges_cents", 0),
        )
        return jsonify({"work_shift": shift.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit payroll hours")
        return internal_error()


@accounting_bp.post("/payroll/<int:work_shift_id>/approve")
@require_auth
@require_admin
def approve_payroll_route(work_shift_id: int):
    """Request body (optional): {"hourly_rate_cents": 800000, "surcharges_cents": 2000000}"""
    try:
        data = request.get_json(silent=True) or {}
        shift = accounting_service.approve_work_shift(
            work_shift_id=work_shift_id,
            admin=g.current_user,
            hourly_rate_cents=data.get("hourly_rate_cents"),
            surcharges_cents=data.get("surcharges_cents"),
        )
        return jsonify({"work_shift": shift.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve payroll")
        return internal_error()


@accounting_bp.post("/payroll/<int:work_shift_id>/reject")
@require_auth
@require_admin
def reject_payroll_route(work_shift_id: int):
    """Request body: {"reason": "Hours do not match the schedule"}"""
    try:
        data = request.get_json(silent=True) or {}
        shift = accounting_service.reject_work_shift(
            work_shift_id=work_shift_id,
            admin=g.current_user,
            reason=data.get("reason"),
        )
        return jsonify({"work_shift": shift.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject payroll")
        return internal_error()


@accounting_bp.delete("/payroll/<int:work_shift_id>")
@require_auth
@require_admin
def delete_payroll_route(work_shift_id: int):
    try:
        accounting_service.delete_work_shift(work_shift_id)
        return jsonify({"ok": True}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


# =============================================================================
# PURCHASES
# =============================================================================

@accounting_bp.get("/purchases")
@require_auth
@require_admin
def list_purchases_route():
    purchases = accounting_service.list_purchases()
    return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)}), 200


@accounting_bp.post("/purchases")
@require_auth
@require_admin
def create_purchase_route():
    try:
        purchase = accounting_service.create_purchase(request.get_json(silent=True) or {})
        return jsonify({"purchase": purchase.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return internal_error()


@accounting_bp.put("/purchases/<int:purchase_id>")
@require_auth
@require_admin
def update_purchase_route(purchase_id: int):
    try:
        purchase = accounting_service.update_purchase(purchase_id, request.get_json(silent=True) or {})
        return jsonify({"purchase": purchase.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return internal_error()


@accounting_bp.delete("/purchases/<int:purchase_id>")
@require_auth
@require_admin
def delete_purchase_route(purchase_id: int):
    try:
        accounting_service.delete_purchase(purchase_id)
        return jsonify({"ok": True}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


# =============================================================================
# SUMMARY
# =============================================================================

@accounting_bp.get("/summary")
@require_auth
@require_admin
def monthly_summary_route():
    """Query params: year, month (default: current UTC month)."""
    now = utcnow()
    year = request.args.get("year", default=now.year, type=int)
    month = request.args.get("month", default=now.month, type=int)
    try:
        return jsonify(accounting_service.monthly_summary(year, month)), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
