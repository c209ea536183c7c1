# Overview: Flask API routes for the credit ("fiao") ledger.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import credit_service
from ..decorators import require_auth
from ..time_utils import parse_iso_datetime
from .errors import DOMAIN_ERRORS, error_response, internal_error


credit_bp = Blueprint("credit", __name__, url_prefix="/api/credit")


@credit_bp.get("/customers")
@require_auth
def list_customers_route():
    active_only = request.args.get("active", "false").lower() == "true"
    customers = credit_service.list_customers(active_only=active_only, search=request.args.get("q"))
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@credit_bp.post("/customers")
@require_auth
def create_customer_route():
    try:
        customer = credit_service.create_customer(request.get_json(silent=True) or {})
        return jsonify({"customer": customer.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create credit customer")
        return internal_error()


@credit_bp.put("/customers/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    try:
        customer = credit_service.update_customer(customer_id, request.get_json(silent=True) or {})
        return jsonify({"customer": customer.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update credit customer")
        return internal_error()


@credit_bp.get("/customers/<int:customer_id>/history")
@require_auth
def customer_history_route(customer_id: int):
    try:
        transactions = credit_service.customer_history(customer_id)
        return jsonify({"items": [t.to_dict() for t in transactions], "count": len(transactions)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load credit history")
        return internal_error()


@credit_bp.post("/customers/<int:customer_id>/transactions")
@require_auth
def register_transaction_route(customer_id: int):
    """
    Request body:
    {"type": "DEBT"|"PAYMENT", "amount_cents": 5000,
     "payment_method": "CASH"|"TRANSFER"|"CARD" (PAYMENT only), "observation": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        tx, customer = credit_service.register_transaction(
            customer_id=customer_id,
            tx_type=data.get("type"),
            amount_cents=data.get("amount_cents"),
            employee=g.current_user,
            payment_method=data.get("payment_method"),
            observation=data.get("observation"),
        )
        return jsonify({"transaction": tx.to_dict(), "customer": customer.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register credit transaction")
        return internal_error()


@credit_bp.get("/transactions/range")
@require_auth
def transactions_range_route():
    """Query params: startDate, endDate (ISO-8601), half-open [start, end)."""
    try:
        start = parse_iso_datetime(request.args.get("startDate"))
        end = parse_iso_datetime(request.args.get("endDate"))
    except ValueError:
        return jsonify({"error": "startDate and endDate must be ISO-8601"}), 400
    if start is None or end is None:
        return jsonify({"error": "startDate and endDate are required"}), 400

    try:
        transactions = credit_service.transactions_in_range(start, end)
        return jsonify({"items": [t.to_dict() for t in transactions], "count": len(transactions)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load credit transactions")
        return internal_error()
