from __future__ import annotations

from ..extensions import db
from barflow.time_utils import to_utc_z


EXPENSE_TYPES = {"EXPENSE", "BANK_COMMITMENT"}

PAYROLL_PENDING = "PENDING"
PAYROLL_APPROVED = "APPROVED"
PAYROLL_REJECTED = "REJECTED"


class FixedExpense(db.Model):
    """Recurring monthly cost (rent, utilities, loan installments)."""
    __tablename__ = "fixed_expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_day = db.Column(db.String(32), nullable=False)
    # EXPENSE or BANK_COMMITMENT
    type = db.Column(db.String(24), nullable=False, default="EXPENSE")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "amount_cents": self.amount_cents,
            "payment_day": self.payment_day,
            "type": self.type,
        }


class WorkShift(db.Model):
    """
    Hours worked by an employee, submitted for payroll.

    LIFECYCLE:
    - PENDING: Submitted, pay estimated from the submitted rate
    - APPROVED: Admin confirmed rate/surcharges, total_pay is final
    - REJECTED: Admin refused it with a reason

    IMMUTABLE: Once APPROVED or REJECTED the status cannot change again.
    """
    __tablename__ = "work_shifts"
    __table_args__ = (
        db.Index("ix_work_shifts_employee_date", "employee_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    employee_name = db.Column(db.String(128), nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False)
    # "HH:MM" wall-clock times
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)

    hours_worked = db.Column(db.Float, nullable=False)
    hourly_rate_cents = db.Column(db.Integer, nullable=False, default=0)
    surcharges_cents = db.Column(db.Integer, nullable=False, default=0)
    total_pay_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=PAYROLL_PENDING, index=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    employee = db.relationship("User", foreign_keys=[employee_id], backref=db.backref("work_shifts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "date": to_utc_z(self.date),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "hours_worked": self.hours_worked,
            "hourly_rate_cents": self.hourly_rate_cents,
            "surcharges_cents": self.surcharges_cents,
            "total_pay_cents": self.total_pay_cents,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
        }


class Purchase(db.Model):
    """Stock purchase from a supplier; counted as an expense in the month it was made."""
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    product_name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)
    observations = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cost_cents": self.total_cost_cents,
            "observations": self.observations,
        }
