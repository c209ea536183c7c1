from __future__ import annotations

from ..extensions import db
from barflow.time_utils import to_utc_z


STATUS_OPEN = "OPEN"
STATUS_CLOSED = "CLOSED"
STATUS_PENDING_APPROVAL = "PENDING_APPROVAL"


class ShiftSession(db.Model):
    """
    One cash-register shift, reconciled by inventory count.

    WHY: The bar does not ring every drink through the till. Revenue for a
    shift is derived from the opening and closing inventory counts, then
    compared against the cash physically counted at close.

    LIFECYCLE:
    - OPEN: Shift in progress (at most one at any time)
    - PENDING_APPROVAL: Closed by an employee, waiting for admin review
    - CLOSED: Closed by an admin, or approved
    An admin may reopen a CLOSED shift when no other shift is OPEN.

    STORAGE: Inventory snapshots, the sales report and the audit trail are
    JSON blobs. They are replaced wholesale on change, never mutated in place.
    """
    __tablename__ = "shift_sessions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    opened_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    closed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(24), nullable=False, default=STATUS_OPEN, index=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # [{"product_id", "product_name", "count"}]
    initial_inventory = db.Column(db.JSON, nullable=False, default=list)
    final_inventory = db.Column(db.JSON, nullable=True)

    sales_report = db.Column(db.JSON, nullable=True)
    real_cash_cents = db.Column(db.Integer, nullable=True)
    closing_observation = db.Column(db.Text, nullable=True)

    # [{"date", "user_id", "user_name", "action", "reason"}]
    audit_log = db.Column(db.JSON, nullable=False, default=list)

    opened_by = db.relationship("User", foreign_keys=[opened_by_user_id], backref=db.backref("shifts_opened", lazy=True))
    closed_by = db.relationship("User", foreign_keys=[closed_by_user_id], backref=db.backref("shifts_closed", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "opened_by_user_id": self.opened_by_user_id,
            "opened_by_name": self.opened_by.name if self.opened_by else None,
            "closed_by_user_id": self.closed_by_user_id,
            "closed_by_name": self.closed_by.name if self.closed_by else None,
            "status": self.status,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "initial_inventory": list(self.initial_inventory or []),
            "final_inventory": list(self.final_inventory) if self.final_inventory is not None else None,
            "sales_report": self.sales_report,
            "real_cash_cents": self.real_cash_cents,
            "closing_observation": self.closing_observation,
            "audit_log": list(self.audit_log or []),
        }
