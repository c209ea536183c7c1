# Overview: Flask API routes for POS checkout and daily stats.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import pos_service
from ..decorators import require_auth
from ..time_utils import parse_iso_date
from .errors import DOMAIN_ERRORS, error_response, internal_error


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _day_arg():
    raw = request.args.get("date")
    return parse_iso_date(raw) if raw else None


@pos_bp.get("/sales")
@require_auth
def list_sales_route():
    """Query params: date (YYYY-MM-DD, UTC; default today)."""
    try:
        sales = pos_service.list_sales(_day_arg())
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@pos_bp.get("/sales/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": pos_service.get_sale(sale_id).to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@pos_bp.post("/sales")
@require_auth
def create_sale_route():
    """
    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "CASH"|"CARD"|"TRANSFER"|"MIXED",
        "cash_received_cents": 20000,     (CASH)
        "payments": [{"method": "CASH", "amount_cents": 5000}, ...],  (MIXED)
        "tip_cents": 0,
        "notes": "..."
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = pos_service.create_sale(
            employee=g.current_user,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            cash_received_cents=data.get("cash_received_cents"),
            tip_cents=data.get("tip_cents", 0),
            notes=data.get("notes"),
            payments=data.get("payments"),
            drawer=current_app.extensions.get("cash_drawer"),
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create POS sale")
        return internal_error()


@pos_bp.get("/stats")
@require_auth
def daily_stats_route():
    try:
        stats = pos_service.daily_stats(_day_arg())
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    return jsonify(stats), 200
