# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/barflow/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Any logged-in user can list products (POS grid, count sheet)
- Writes are admin only
"""
from flask import Blueprint, request

from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "cost_price_cents", "sale_price_cents", "is_active",
        "image_url", "quick_sale", "display_order", "stock", "barcode",
    },
    required_on_create={"name", "category", "sale_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - active: "true" to list only active products
    - quick_sale: "true" to list only POS grid products
    """
    active_only = request.args.get("active", "false").lower() == "true"
    quick_sale_only = request.args.get("quick_sale", "false").lower() == "true"
    products = products_service.list_products(active_only=active_only, quick_sale_only=quick_sale_only)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    created = products_service.create_product(patch=patch)
    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """
    Delete a product. Products already sold through the POS are deactivated
    instead ({"deleted": false}).
    """
    try:
        result = products_service.delete_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return result, 200
