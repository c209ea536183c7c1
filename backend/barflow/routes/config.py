# Overview: Flask API routes for application settings.

from flask import Blueprint, request, jsonify, current_app

from ..services import settings_service
from ..services.drawer_service import DrawerError
from ..decorators import require_auth, require_admin
from .errors import DOMAIN_ERRORS, error_response, internal_error


config_bp = Blueprint("config", __name__, url_prefix="/api/config")


@config_bp.get("")
@require_auth
def get_config_route():
    return jsonify({"config": settings_service.get_config().to_dict()}), 200


@config_bp.patch("")
@require_auth
@require_admin
def update_config_route():
    """
    Writable: bar_name, last_export_date, cash_drawer_enabled,
    cash_drawer_port, cash_drawer_baud_rate. Drawer port/baud changes are
    pushed to the running drawer service.
    """
    try:
        cfg = settings_service.update_config(request.get_json(silent=True))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update config")
        return internal_error()

    drawer = current_app.extensions.get("cash_drawer")
    if drawer is not None:
        try:
            drawer.update_config(port=cfg.cash_drawer_port, baud_rate=cfg.cash_drawer_baud_rate)
        except DrawerError:
            current_app.logger.warning("Drawer did not accept the new settings", exc_info=True)

    return jsonify({"config": cfg.to_dict()}), 200
