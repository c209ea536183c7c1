# Overview: Service-layer operations for bar shifts; open, close, approve and reopen with audit trail.

"""
Shift Session Service

WHY: A shift is the period of accountability between two inventory counts.
Closing it produces the SalesReport and the cash variance; the closing count
becomes the next shift's opening baseline.

STATE MACHINE:
    OPEN --close(admin)--------> CLOSED
    OPEN --close(employee)-----> PENDING_APPROVAL --approve(admin)--> CLOSED
    CLOSED --reopen(admin, reason, no other OPEN)--> OPEN

DESIGN PRINCIPLES:
- At most one OPEN session at any time
- APPROVED and REOPENED transitions append to audit_log, never overwrite
- Close writes the session and the baseline in one commit; on failure
  everything rolls back and the session stays OPEN
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import CreditTransaction, Product, ShiftSession, User
from ..models.shifts import STATUS_CLOSED, STATUS_OPEN, STATUS_PENDING_APPROVAL
from ..validation import ConflictError, ForbiddenError, NotFoundError, ValidationError, parse_amount_cents
from barflow.time_utils import utcnow
from . import alerts_service, settings_service
from .concurrency import lock_for_update
from .reconciliation import build_sales_report, inventory_counts


ACTION_REOPENED = "REOPENED"
ACTION_APPROVED = "APPROVED"
APPROVAL_REASON = "Administrative approval"


class ShiftError(ConflictError):
    """Raised for shift state conflicts (409)."""
    pass


def _require_admin(user: User, action: str) -> None:
    if not user.is_admin:
        raise ForbiddenError(f"Only an admin can {action} a shift")


def _audit_entry(user: User, action: str, reason: str) -> dict:
    return {
        "date": utcnow().isoformat() + "Z",
        "user_id": user.id,
        "user_name": user.name,
        "action": action,
        "reason": reason,
    }


def _normalize_inventory(raw, field_name: str) -> list[dict]:
    """Validate a [{"product_id", "product_name"?, "count"}] snapshot from a client."""
    if not isinstance(raw, list):
        raise ValidationError(f"{field_name} must be a list")

    names = {p.id: p.name for p in db.session.query(Product.id, Product.name).all()}
    rows = []
    seen = set()
    for row in raw:
        if not isinstance(row, dict):
            raise ValidationError(f"{field_name} entries must be objects")
        product_id = row.get("product_id")
        count = row.get("count")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError(f"{field_name}: product_id must be an integer")
        if product_id not in names:
            raise ValidationError(f"{field_name}: unknown product {product_id}")
        if product_id in seen:
            raise ValidationError(f"{field_name}: duplicate product {product_id}")
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValidationError(f"{field_name}: count must be an integer >= 0")
        seen.add(product_id)
        rows.append({"product_id": product_id, "product_name": names[product_id], "count": count})
    return rows


def get_session(session_id: int) -> ShiftSession:
    session = db.session.get(ShiftSession, session_id)
    if not session:
        raise NotFoundError("Session not found")
    return session


def get_active_session() -> ShiftSession | None:
    return db.session.query(ShiftSession).filter_by(status=STATUS_OPEN).first()


def list_sessions(*, status: str | None = None, limit: int | None = None) -> list[ShiftSession]:
    query = db.session.query(ShiftSession)
    if status:
        query = query.filter(ShiftSession.status == status)
    query = query.order_by(ShiftSession.opened_at.desc(), ShiftSession.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def open_shift(*, user: User, initial_inventory: list | None = None) -> ShiftSession:
    """
    Open a new shift.

    When initial_inventory is omitted the opening snapshot is built from the
    stored baseline (last closing count) for every active product.

    Raises:
        ShiftError: another session is already OPEN
        ValidationError: malformed snapshot
    """
    existing_open = get_active_session()
    if existing_open:
        raise ShiftError(f"A shift is already open (session {existing_open.id})")

    if initial_inventory is None:
        snapshot = settings_service.build_opening_snapshot()
    else:
        snapshot = _normalize_inventory(initial_inventory, "initial_inventory")

    session = ShiftSession(
        opened_by_user_id=user.id,
        status=STATUS_OPEN,
        opened_at=utcnow(),
        initial_inventory=snapshot,
        audit_log=[],
    )
    db.session.add(session)
    db.session.commit()

    current_app.logger.info("Shift %s opened by %s", session.id, user.username)
    return session


def close_shift(
    *,
    session_id: int,
    user: User,
    final_inventory,
    real_cash_cents,
    observation: str | None = None,
) -> ShiftSession:
    """
    Close an OPEN shift and attach its SalesReport.

    Status becomes CLOSED when the closer is an admin, otherwise
    PENDING_APPROVAL. The final count is persisted as the next opening
    baseline in the same commit.

    Raises:
        ValidationError: real cash missing/invalid, malformed snapshot
        ShiftError: session is not OPEN
    """
    if real_cash_cents is None:
        raise ValidationError("real_cash_cents is required")
    real_cash = parse_amount_cents(real_cash_cents, "real_cash_cents", allow_zero=True)
    final_rows = _normalize_inventory(final_inventory, "final_inventory")

    session = lock_for_update(db.session.query(ShiftSession).filter_by(id=session_id)).first()
    if not session:
        raise NotFoundError("Session not found")
    if session.status != STATUS_OPEN:
        raise ShiftError(f"Session is {session.status}, only an OPEN session can be closed")

    closed_at = utcnow()
    products = db.session.query(Product).filter(Product.is_active.is_(True)).all()
    transactions = (
        db.session.query(CreditTransaction)
        .filter(CreditTransaction.date >= session.opened_at, CreditTransaction.date < closed_at)
        .all()
    )
    report = build_sales_report(
        products=products,
        initial_inventory=session.initial_inventory,
        final_inventory=final_rows,
        transactions=transactions,
        real_cash_cents=real_cash,
        opened_at=session.opened_at,
        closed_at=closed_at,
    )

    try:
        session.status = STATUS_CLOSED if user.is_admin else STATUS_PENDING_APPROVAL
        session.closed_by_user_id = user.id
        session.closed_at = closed_at
        session.final_inventory = final_rows
        session.sales_report = report.to_dict()
        session.real_cash_cents = real_cash
        session.closing_observation = (observation or "").strip() or None

        settings_service.set_inventory_base(inventory_counts(final_rows))

        tolerance = current_app.config.get("CASH_MISMATCH_TOLERANCE_CENTS", 0)
        if abs(report.difference) > tolerance:
            alerts_service.create_alert(
                alert_type="CASH_MISMATCH",
                severity="MEDIUM",
                message=(
                    f"Shift {session.id} closed with a cash difference of {report.difference} cents "
                    f"(expected {report.cash_to_deliver}, counted {real_cash})"
                ),
                user_id=user.id,
                commit=False,
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Shift %s closed by %s (%s), difference=%s",
        session.id, user.username, session.status, report.difference,
    )
    return session


def approve_shift(*, session_id: int, admin: User) -> ShiftSession:
    """
    PENDING_APPROVAL -> CLOSED.

    Raises:
        ForbiddenError: caller is not an admin
        ShiftError: session is not PENDING_APPROVAL
    """
    _require_admin(admin, "approve")

    session = lock_for_update(db.session.query(ShiftSession).filter_by(id=session_id)).first()
    if not session:
        raise NotFoundError("Session not found")
    if session.status != STATUS_PENDING_APPROVAL:
        raise ShiftError(f"Session is {session.status}, only PENDING_APPROVAL can be approved")

    session.status = STATUS_CLOSED
    # Reassign so the JSON column is flagged dirty
    session.audit_log = list(session.audit_log or []) + [
        _audit_entry(admin, ACTION_APPROVED, APPROVAL_REASON)
    ]
    db.session.commit()

    current_app.logger.info("Shift %s approved by %s", session.id, admin.username)
    return session


def reopen_shift(*, session_id: int, admin: User, reason: str | None) -> ShiftSession:
    """
    CLOSED -> OPEN, admin only, and only when no other session is OPEN.

    The previous close data (final inventory, report) is kept until the
    session is closed again, which overwrites it.

    Raises:
        ForbiddenError: caller is not an admin
        ValidationError: missing reason
        ShiftError: session not CLOSED, or another session is OPEN
    """
    _require_admin(admin, "reopen")

    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required to reopen a shift")

    session = lock_for_update(db.session.query(ShiftSession).filter_by(id=session_id)).first()
    if not session:
        raise NotFoundError("Session not found")
    if session.status != STATUS_CLOSED:
        raise ShiftError(f"Session is {session.status}, only CLOSED sessions can be reopened")

    existing_open = get_active_session()
    if existing_open:
        raise ShiftError(f"Cannot reopen while session {existing_open.id} is OPEN")

    session.status = STATUS_OPEN
    session.audit_log = list(session.audit_log or []) + [
        _audit_entry(admin, ACTION_REOPENED, reason)
    ]
    db.session.commit()

    current_app.logger.warning("Shift %s reopened by %s: %s", session.id, admin.username, reason)
    return session
