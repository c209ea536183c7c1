# Overview: Flask API routes for staff accounts; admin-only writes.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import User
from ..services import auth_service
from ..decorators import require_auth, require_admin
from .errors import DOMAIN_ERRORS, error_response, internal_error


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
def list_users_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    users = query.order_by(User.name.asc(), User.id.asc()).all()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """
    Request body:
    {"username": "maria", "name": "Maria", "password": "secret123", "role": "EMPLOYEE"}
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            name=data.get("name"),
            password=data.get("password"),
            role=data.get("role", "EMPLOYEE"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return internal_error()


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.update_user(
            user_id=user_id,
            name=data.get("name"),
            role=data.get("role"),
            is_active=data.get("is_active"),
            password=data.get("password"),
        )
        return jsonify({"user": user.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return internal_error()


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id=user_id)
        return jsonify({"message": "User removed"}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return internal_error()
