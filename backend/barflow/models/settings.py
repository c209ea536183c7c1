from __future__ import annotations

from ..extensions import db
from barflow.time_utils import to_utc_z


DEFAULT_CONFIG_ID = "default"


class AppConfig(db.Model):
    """
    Single-row application settings.

    WHY: inventory_base is the server-authoritative opening baseline
    ({product_id: count}). It is written by shift close in the same commit
    as the closed session, so the next shift always opens from the last
    counted stock.
    """
    __tablename__ = "app_config"

    id = db.Column(db.String(32), primary_key=True, default=DEFAULT_CONFIG_ID)
    bar_name = db.Column(db.String(128), nullable=False, default="BarFlow")
    last_export_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Read by clients only; sales and manual opens always fire the drawer
    cash_drawer_enabled = db.Column(db.Boolean, nullable=False, default=False)
    cash_drawer_port = db.Column(db.String(64), nullable=True)
    cash_drawer_baud_rate = db.Column(db.Integer, nullable=False, default=9600)

    # JSON object keyed by str(product_id)
    inventory_base = db.Column(db.JSON, nullable=False, default=dict)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bar_name": self.bar_name,
            "last_export_date": to_utc_z(self.last_export_date) if self.last_export_date else None,
            "cash_drawer_enabled": self.cash_drawer_enabled,
            "cash_drawer_port": self.cash_drawer_port,
            "cash_drawer_baud_rate": self.cash_drawer_baud_rate,
            "inventory_base": dict(self.inventory_base or {}),
            "updated_at": to_utc_z(self.updated_at),
        }
