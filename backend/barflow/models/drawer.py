from __future__ import annotations

from ..extensions import db
from barflow.time_utils import to_utc_z


EVENT_SALE = "SALE"
EVENT_MANUAL = "MANUAL"
EVENT_UNKNOWN = "UNKNOWN"
EVENT_SENSOR_AUTO = "SENSOR_AUTO"
DRAWER_EVENT_TYPES = {EVENT_SALE, EVENT_MANUAL, EVENT_UNKNOWN, EVENT_SENSOR_AUTO}

ALERT_TYPES = {
    "UNAUTHORIZED_OPEN",
    "LONG_OPEN",
    "JAMMED",
    "SENSOR_ERROR",
    "CASH_MISMATCH",
    "SUSPICIOUS_PATTERN",
}
ALERT_SEVERITIES = {"LOW", "MEDIUM", "HIGH", "CRITICAL"}


class DrawerLog(db.Model):
    """
    Cash drawer open history.

    WHY: Every physical (or simulated) drawer open is recorded with who did
    it and why. Opens outside a sale are the classic skimming signal.

    APPEND-ONLY: Rows are never updated or deleted.
    """
    __tablename__ = "drawer_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # SALE, MANUAL, UNKNOWN, SENSOR_AUTO
    event_type = db.Column(db.String(16), nullable=False)
    # OPEN, CLOSED, JAMMED
    status = db.Column(db.String(16), nullable=False, default="OPEN")

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    user_name = db.Column(db.String(128), nullable=True)

    duration_ms = db.Column(db.Integer, nullable=True)
    is_authorized = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("pos_sales.id"), nullable=True, index=True)
    # True when no hardware was driven (simulation or degraded)
    simulated = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "event_type": self.event_type,
            "status": self.status,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "duration_ms": self.duration_ms,
            "is_authorized": self.is_authorized,
            "notes": self.notes,
            "sale_id": self.sale_id,
            "simulated": self.simulated,
        }


class DrawerAlert(db.Model):
    """
    Security/consistency alert raised by drawer activity or shift close.

    LIFECYCLE: Created unacknowledged; an admin acknowledges it exactly once.
    """
    __tablename__ = "drawer_alerts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False, index=True)
    severity = db.Column(db.String(16), nullable=False)
    message = db.Column(db.Text, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    acknowledged = db.Column(db.Boolean, nullable=False, default=False, index=True)
    acknowledged_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "user_id": self.user_id,
            "acknowledged": self.acknowledged,
            "acknowledged_by_user_id": self.acknowledged_by_user_id,
            "acknowledged_at": to_utc_z(self.acknowledged_at) if self.acknowledged_at else None,
        }
