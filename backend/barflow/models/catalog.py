from __future__ import annotations

from ..extensions import db
from barflow.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog item sold at the bar.

    WHY: Shift reconciliation values inventory deltas at sale_price/cost_price,
    and the POS screen lists quick_sale products ordered by display_order.

    DESIGN: Products are never hard-deleted once referenced by a sale line;
    deactivate them instead (is_active=False excludes them from shift counts).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_order", "is_active", "display_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    category = db.Column(db.String(64), nullable=False)

    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    # POS screen layout
    quick_sale = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "is_active": self.is_active,
            "image_url": self.image_url,
            "quick_sale": self.quick_sale,
            "display_order": self.display_order,
            "stock": self.stock,
            "barcode": self.barcode,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
