# Overview: Service-layer operations for accounting; fixed expenses, payroll approval, purchases, monthly summary.

"""
Accounting Service

PAYROLL LIFECYCLE (WorkShift.status):
    PENDING --approve(admin, rate, surcharges)--> APPROVED
    PENDING --reject(admin, reason)-------------> REJECTED
Approved and rejected shifts are final.

MONTHLY SUMMARY:
    revenue        = sum of shift sales reports (closed or pending) opened in the month
    total_expenses = purchases + approved payroll + fixed EXPENSE + BANK_COMMITMENT
    real_profit    = revenue - total_expenses
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import FixedExpense, Purchase, ShiftSession, User, WorkShift
from ..models.accounting import EXPENSE_TYPES, PAYROLL_APPROVED, PAYROLL_PENDING, PAYROLL_REJECTED
from ..models.shifts import STATUS_CLOSED, STATUS_PENDING_APPROVAL
from ..validation import (
    ConflictError,
    ForbiddenError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_amount_range,
    parse_amount_cents,
    validate_payload,
)
from barflow.time_utils import month_bounds, utcnow


class PayrollError(ConflictError):
    """Raised when a payroll entry is not in a state that allows the action."""
    pass


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "amount_cents", "payment_day", "type"},
    required_on_create={"name", "amount_cents", "payment_day"},
    choices={"type": EXPENSE_TYPES},
)

PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={"date", "product_name", "quantity", "unit_cost_cents", "observations"},
    required_on_create={"product_name", "quantity", "unit_cost_cents"},
)


# =============================================================================
# FIXED EXPENSES
# =============================================================================

def list_expenses() -> list[FixedExpense]:
    return db.session.query(FixedExpense).order_by(FixedExpense.name.asc(), FixedExpense.id.asc()).all()


def create_expense(payload) -> FixedExpense:
    patch = validate_payload(model=FixedExpense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_amount_range(patch, "amount_cents")
    expense = FixedExpense(**patch)
    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(expense_id: int, payload) -> FixedExpense:
    patch = validate_payload(model=FixedExpense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_amount_range(patch, "amount_cents")
    expense = db.session.get(FixedExpense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    for key, value in patch.items():
        setattr(expense, key, value)
    db.session.commit()
    return expense


def delete_expense(expense_id: int) -> None:
    expense = db.session.get(FixedExpense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    db.session.delete(expense)
    db.session.commit()


# =============================================================================
# PAYROLL
# =============================================================================

def _parse_hhmm(value, field_name: str) -> int:
    """'HH:MM' -> minutes after midnight."""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be HH:MM")
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValidationError(f"{field_name} must be HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        raise ValidationError(f"{field_name} must be a valid time of day")
    return hours * 60 + minutes


def compute_hours(start_time: str, end_time: str) -> float:
    """
    Hours between two wall-clock times. An end before the start means the
    shift ran past midnight.
    """
    start = _parse_hhmm(start_time, "start_time")
    end = _parse_hhmm(end_time, "end_time")
    minutes = end - start
    if minutes < 0:
        minutes += 24 * 60
    return round(minutes / 60.0, 2)


def compute_total_pay(hours: float, hourly_rate_cents: int, surcharges_cents: int) -> int:
    return int(round(hours * hourly_rate_cents)) + surcharges_cents


def list_work_shifts(*, employee_id: int | None = None, status: str | None = None) -> list[WorkShift]:
    query = db.session.query(WorkShift)
    if employee_id is not None:
        query = query.filter(WorkShift.employee_id == employee_id)
    if status:
        query = query.filter(WorkShift.status == status)
    return query.order_by(WorkShift.date.desc(), WorkShift.id.desc()).all()


def submit_work_shift(
    *,
    employee: User,
    date,
    start_time: str,
    end_time: str,
    hourly_rate_cents=0,
    surcharges_cents=0,
) -> WorkShift:
    """Record hours for payroll; starts PENDING with an estimated total."""
    if date is None:
        raise ValidationError("date is required")
    hours = compute_hours(start_time, end_time)
    rate = parse_amount_cents(hourly_rate_cents, "hourly_rate_cents", allow_zero=True)
    surcharges = parse_amount_cents(surcharges_cents, "surcharges_cents", allow_zero=True)

    shift = WorkShift(
        employee_id=employee.id,
        employee_name=employee.name,
        date=date,
        start_time=start_time.strip(),
        end_time=end_time.strip(),
        hours_worked=hours,
        hourly_rate_cents=rate,
        surcharges_cents=surcharges,
        total_pay_cents=compute_total_pay(hours, rate, surcharges),
        status=PAYROLL_PENDING,
    )
    db.session.add(shift)
    db.session.commit()
    return shift


def _get_pending_shift(work_shift_id: int) -> WorkShift:
    shift = db.session.get(WorkShift, work_shift_id)
    if not shift:
        raise NotFoundError("Work shift not found")
    if shift.status != PAYROLL_PENDING:
        raise PayrollError(f"Work shift already {shift.status}")
    return shift


def approve_work_shift(
    *,
    work_shift_id: int,
    admin: User,
    hourly_rate_cents=None,
    surcharges_cents=None,
) -> WorkShift:
    if not admin.is_admin:
        raise ForbiddenError("Only an admin can approve payroll")
    shift = _get_pending_shift(work_shift_id)

    if hourly_rate_cents is not None:
        shift.hourly_rate_cents = parse_amount_cents(hourly_rate_cents, "hourly_rate_cents", allow_zero=True)
    if surcharges_cents is not None:
        shift.surcharges_cents = parse_amount_cents(surcharges_cents, "surcharges_cents", allow_zero=True)

    shift.total_pay_cents = compute_total_pay(shift.hours_worked, shift.hourly_rate_cents, shift.surcharges_cents)
    shift.status = PAYROLL_APPROVED
    shift.approved_by_user_id = admin.id
    shift.approved_at = utcnow()
    shift.rejection_reason = None
    db.session.commit()

    current_app.logger.info("Work shift %s approved by %s", shift.id, admin.username)
    return shift


def reject_work_shift(*, work_shift_id: int, admin: User, reason: str | None) -> WorkShift:
    if not admin.is_admin:
        raise ForbiddenError("Only an admin can reject payroll")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required to reject a work shift")
    shift = _get_pending_shift(work_shift_id)

    shift.status = PAYROLL_REJECTED
    shift.rejection_reason = reason
    shift.approved_by_user_id = admin.id
    shift.approved_at = utcnow()
    db.session.commit()
    return shift


def delete_work_shift(work_shift_id: int) -> None:
    """Only PENDING entries can be withdrawn."""
    shift = _get_pending_shift(work_shift_id)
    db.session.delete(shift)
    db.session.commit()


# =============================================================================
# PURCHASES
# =============================================================================

def list_purchases(*, start=None, end=None) -> list[Purchase]:
    query = db.session.query(Purchase)
    if start is not None:
        query = query.filter(Purchase.date >= start)
    if end is not None:
        query = query.filter(Purchase.date < end)
    return query.order_by(Purchase.date.desc(), Purchase.id.desc()).all()


def _apply_purchase(purchase: Purchase, patch: dict) -> None:
    for key, value in patch.items():
        setattr(purchase, key, value)
    if purchase.quantity is None or purchase.quantity <= 0:
        raise ValidationError("quantity must be > 0")
    purchase.total_cost_cents = purchase.quantity * purchase.unit_cost_cents


def create_purchase(payload) -> Purchase:
    patch = validate_payload(model=Purchase, payload=payload, policy=PURCHASE_POLICY, partial=False)
    enforce_amount_range(patch, "unit_cost_cents")
    purchase = Purchase()
    _apply_purchase(purchase, patch)
    if purchase.date is None:
        purchase.date = utcnow()
    db.session.add(purchase)
    db.session.commit()
    return purchase


def update_purchase(purchase_id: int, payload) -> Purchase:
    patch = validate_payload(model=Purchase, payload=payload, policy=PURCHASE_POLICY, partial=True)
    enforce_amount_range(patch, "unit_cost_cents")
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase not found")
    _apply_purchase(purchase, patch)
    db.session.commit()
    return purchase


def delete_purchase(purchase_id: int) -> None:
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase not found")
    db.session.delete(purchase)
    db.session.commit()


# =============================================================================
# SUMMARY
# =============================================================================

def monthly_summary(year: int, month: int) -> dict:
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    start, end = month_bounds(year, month)

    sessions = (
        db.session.query(ShiftSession)
        .filter(
            ShiftSession.status.in_([STATUS_CLOSED, STATUS_PENDING_APPROVAL]),
            ShiftSession.opened_at >= start,
            ShiftSession.opened_at < end,
        )
        .all()
    )
    revenue = 0
    cost_of_goods = 0
    for session in sessions:
        report = session.sales_report or {}
        revenue += int(report.get("total_revenue") or 0)
        cost_of_goods += int(report.get("total_cost") or 0)

    purchases = sum(p.total_cost_cents for p in list_purchases(start=start, end=end))

    payroll = sum(
        shift.total_pay_cents
        for shift in db.session.query(WorkShift).filter(
            WorkShift.status == PAYROLL_APPROVED,
            WorkShift.date >= start,
            WorkShift.date < end,
        )
    )

    fixed_expenses = 0
    bank_commitments = 0
    for expense in list_expenses():
        if expense.type == "BANK_COMMITMENT":
            bank_commitments += expense.amount_cents
        else:
            fixed_expenses += expense.amount_cents

    total_expenses = purchases + payroll + fixed_expenses + bank_commitments
    return {
        "year": year,
        "month": month,
        "shift_count": len(sessions),
        "revenue_cents": revenue,
        "cost_of_goods_cents": cost_of_goods,
        "purchases_cents": purchases,
        "payroll_cents": payroll,
        "fixed_expenses_cents": fixed_expenses,
        "bank_commitments_cents": bank_commitments,
        "total_expenses_cents": total_expenses,
        "real_profit_cents": revenue - total_expenses,
    }
