from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import AppConfig, Product
from ..models.settings import DEFAULT_CONFIG_ID
from ..validation import ModelValidationPolicy, validate_payload, ValidationError


# inventory_base is owned by shift close; clients never write it.
CONFIG_POLICY = ModelValidationPolicy(
    writable_fields={
        "bar_name",
        "last_export_date",
        "cash_drawer_enabled",
        "cash_drawer_port",
        "cash_drawer_baud_rate",
    },
)

SUPPORTED_BAUD_RATES = {2400, 4800, 9600, 19200, 38400, 57600, 115200}


def get_config(*, commit: bool = True) -> AppConfig:
    """Return the singleton config row, creating it on first read."""
    cfg = db.session.get(AppConfig, DEFAULT_CONFIG_ID)
    if cfg is None:
        cfg = AppConfig(id=DEFAULT_CONFIG_ID, inventory_base={})
        db.session.add(cfg)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    return cfg


def update_config(payload: Any) -> AppConfig:
    patch = validate_payload(model=AppConfig, payload=payload, policy=CONFIG_POLICY, partial=True)
    baud = patch.get("cash_drawer_baud_rate")
    if baud is not None and baud not in SUPPORTED_BAUD_RATES:
        raise ValidationError(
            f"cash_drawer_baud_rate must be one of: {', '.join(str(b) for b in sorted(SUPPORTED_BAUD_RATES))}"
        )

    cfg = get_config()
    for key, value in patch.items():
        setattr(cfg, key, value)
    db.session.commit()
    return cfg


def get_inventory_base() -> dict[int, int]:
    """Opening baseline as {product_id: count}."""
    cfg = get_config()
    base = {}
    for key, value in (cfg.inventory_base or {}).items():
        try:
            base[int(key)] = int(value)
        except (TypeError, ValueError):
            continue
    return base


def set_inventory_base(counts: dict[int, int]) -> None:
    """
    Replace the opening baseline.

    Does not commit: shift close writes it in the same transaction as the
    closed session.
    """
    cfg = get_config(commit=False)
    # Reassign so the JSON column is flagged dirty
    cfg.inventory_base = {str(pid): int(count) for pid, count in counts.items()}


def build_opening_snapshot() -> list[dict]:
    """Opening inventory for every active product, from the stored baseline (missing -> 0)."""
    base = get_inventory_base()
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.display_order.asc(), Product.name.asc(), Product.id.asc())
        .all()
    )
    return [
        {"product_id": p.id, "product_name": p.name, "count": base.get(p.id, 0)}
        for p in products
    ]
