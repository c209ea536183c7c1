# Overview: Service-layer operations for drawer logs and security alerts.

"""
Drawer Logs and Alerts

WHY: Every drawer open is an accountability event. Manual opens by an
employee without a stated reason, and shift closes whose cash difference is
larger than the configured tolerance, raise alerts for the admin.

EVENT TYPES (DrawerLog.event_type):
- SALE: Opened by a cash/mixed POS sale
- MANUAL: Opened from the drawer screen (reason expected)
- SENSOR_AUTO: Sensor reported an open nobody asked for
- UNKNOWN: Anything else
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import DrawerAlert, DrawerLog, User
from ..models.drawer import ALERT_SEVERITIES, ALERT_TYPES, DRAWER_EVENT_TYPES, EVENT_MANUAL
from ..validation import ConflictError, NotFoundError, ValidationError
from barflow.time_utils import utcnow
from .drawer_service import DrawerError


class AlertError(ConflictError):
    pass


def create_alert(
    *,
    alert_type: str,
    severity: str,
    message: str,
    user_id: int | None = None,
    commit: bool = True,
) -> DrawerAlert:
    if alert_type not in ALERT_TYPES:
        raise ValidationError(f"Unknown alert type: {alert_type}")
    if severity not in ALERT_SEVERITIES:
        raise ValidationError(f"Unknown alert severity: {severity}")

    alert = DrawerAlert(
        date=utcnow(),
        type=alert_type,
        severity=severity,
        message=message,
        user_id=user_id,
        acknowledged=False,
    )
    db.session.add(alert)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return alert


def list_alerts(
    *,
    acknowledged: bool | None = None,
    severity: str | None = None,
    alert_type: str | None = None,
    limit: int = 200,
) -> list[DrawerAlert]:
    query = db.session.query(DrawerAlert)
    if acknowledged is not None:
        query = query.filter(DrawerAlert.acknowledged.is_(acknowledged))
    if severity:
        query = query.filter(DrawerAlert.severity == severity)
    if alert_type:
        query = query.filter(DrawerAlert.type == alert_type)
    return query.order_by(DrawerAlert.date.desc(), DrawerAlert.id.desc()).limit(limit).all()


def acknowledge_alert(*, alert_id: int, admin: User) -> DrawerAlert:
    alert = db.session.get(DrawerAlert, alert_id)
    if not alert:
        raise NotFoundError("Alert not found")
    if alert.acknowledged:
        raise AlertError("Alert already acknowledged")

    alert.acknowledged = True
    alert.acknowledged_by_user_id = admin.id
    alert.acknowledged_at = utcnow()
    db.session.commit()
    return alert


def log_drawer_open(
    *,
    event_type: str,
    user: User | None,
    is_authorized: bool = True,
    notes: str | None = None,
    sale_id: int | None = None,
    simulated: bool = False,
    duration_ms: int | None = None,
    commit: bool = True,
) -> DrawerLog:
    """
    Append a DrawerLog row.

    APPEND-ONLY: There is no update or delete counterpart.
    """
    if event_type not in DRAWER_EVENT_TYPES:
        raise ValidationError(f"Unknown drawer event type: {event_type}")

    log = DrawerLog(
        date=utcnow(),
        event_type=event_type,
        status="OPEN",
        user_id=user.id if user else None,
        user_name=user.name if user else None,
        duration_ms=duration_ms,
        is_authorized=is_authorized,
        notes=notes,
        sale_id=sale_id,
        simulated=simulated,
    )
    db.session.add(log)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return log


def list_drawer_logs(*, start=None, end=None, limit: int = 200) -> list[DrawerLog]:
    query = db.session.query(DrawerLog)
    if start is not None:
        query = query.filter(DrawerLog.date >= start)
    if end is not None:
        query = query.filter(DrawerLog.date < end)
    return query.order_by(DrawerLog.date.desc(), DrawerLog.id.desc()).limit(limit).all()


def open_drawer_for(drawer, *, duration_ms: int | None = None) -> bool:
    """
    Fire the drawer and report whether it ran simulated.

    Hardware failures never propagate: the open is treated as simulated and
    logged.
    """
    if drawer is None:
        return True
    try:
        drawer.open_drawer(duration_ms)
    except DrawerError:
        current_app.logger.warning("Cash drawer open failed, recorded as simulated", exc_info=True)
        return True
    return drawer.is_simulation


def manual_open(*, user: User, reason: str | None, drawer) -> DrawerLog:
    """
    Open the drawer outside a sale.

    ADMIN opens are always authorized. EMPLOYEE opens without a reason are
    logged as unauthorized and raise an UNAUTHORIZED_OPEN (HIGH) alert.
    """
    reason = (reason or "").strip() or None
    authorized = user.is_admin or reason is not None

    simulated = open_drawer_for(drawer)

    log = log_drawer_open(
        event_type=EVENT_MANUAL,
        user=user,
        is_authorized=authorized,
        notes=reason,
        simulated=simulated,
        commit=False,
    )
    if not authorized:
        create_alert(
            alert_type="UNAUTHORIZED_OPEN",
            severity="HIGH",
            message=f"{user.name} opened the cash drawer without a sale or reason",
            user_id=user.id,
            commit=False,
        )
    db.session.commit()

    if not authorized:
        current_app.logger.warning("Unauthorized drawer open by %s", user.username)
    return log
