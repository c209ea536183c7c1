# Overview: Service-layer operations for the product catalog.

"""
Products Service

Products are listed by display_order then name, which is both the POS grid
order and the order of rows on the shift inventory count sheet.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, PosSaleItem
from ..validation import NotFoundError

PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "cost_price_cents", "sale_price_cents", "is_active",
    "image_url", "quick_sale", "display_order", "stock", "barcode",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(*, active_only: bool = False, quick_sale_only: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    if quick_sale_only:
        query = query.filter(Product.quick_sale.is_(True))
    return query.order_by(Product.display_order.asc(), Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def create_product(*, patch: dict) -> Product:
    """Create product from an already validated patch dict."""
    product = Product()
    apply_product_patch(product, patch)
    if product.is_active is None:
        product.is_active = True
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    apply_product_patch(product, patch)
    db.session.commit()
    return product


def delete_product(product_id: int) -> dict:
    """
    Delete a product, or deactivate it when sale lines reference it.

    Returns {"deleted": bool, "product": dict}.
    """
    product = get_product(product_id)
    in_use = db.session.query(PosSaleItem).filter(PosSaleItem.product_id == product.id).first()
    if in_use:
        product.is_active = False
        db.session.commit()
        return {"deleted": False, "product": product.to_dict()}

    snapshot = product.to_dict()
    db.session.delete(product)
    db.session.commit()
    return {"deleted": True, "product": snapshot}
