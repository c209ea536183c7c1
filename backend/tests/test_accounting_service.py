"""
Accounting: fixed expenses, payroll approval, purchases, monthly summary.
"""

from datetime import datetime

import pytest

from barflow.extensions import db
from barflow.models import ShiftSession
from barflow.models.shifts import STATUS_CLOSED, STATUS_OPEN, STATUS_PENDING_APPROVAL
from barflow.services import accounting_service
from barflow.services.accounting_service import PayrollError, compute_hours, compute_total_pay
from barflow.validation import ForbiddenError, ValidationError


class TestPayrollMath:
    @pytest.mark.parametrize("start,end,hours", [
        ("18:00", "23:30", 5.5),
        ("20:00", "02:00", 6.0),
        ("22:15", "06:00", 7.75),
        ("09:00", "09:00", 0.0),
    ])
    def test_compute_hours(self, start, end, hours):
        assert compute_hours(start, end) == hours

    @pytest.mark.parametrize("value", ["25:00", "8", "ab:cd", None, "12:60"])
    def test_rejects_bad_times(self, value):
        with pytest.raises(ValidationError):
            compute_hours(value, "10:00")

    def test_total_pay_rounds_to_cents(self):
        assert compute_total_pay(7.75, 1001, 500) == 8258


class TestPayrollLifecycle:
    def _submit(self, employee):
        return accounting_service.submit_work_shift(
            employee=employee, date=datetime(2026, 3, 7),
            start_time="20:00", end_time="02:00", hourly_rate_cents=800000,
        )

    def test_submit_starts_pending_with_estimate(self, employee_user):
        shift = self._submit(employee_user)
        assert shift.status == "PENDING"
        assert shift.hours_worked == 6.0
        assert shift.total_pay_cents == 4800000

    def test_approve_recomputes_with_admin_rate(self, admin_user, employee_user):
        shift = self._submit(employee_user)
        approved = accounting_service.approve_work_shift(
            work_shift_id=shift.id, admin=admin_user,
            hourly_rate_cents=900000, surcharges_cents=100000,
        )
        assert approved.status == "APPROVED"
        assert approved.total_pay_cents == 6 * 900000 + 100000
        assert approved.approved_by_user_id == admin_user.id

    def test_reject_requires_reason(self, admin_user, employee_user):
        shift = self._submit(employee_user)
        with pytest.raises(ValidationError):
            accounting_service.reject_work_shift(work_shift_id=shift.id, admin=admin_user, reason="")

        rejected = accounting_service.reject_work_shift(work_shift_id=shift.id, admin=admin_user, reason="Wrong day")
        assert rejected.status == "REJECTED"
        assert rejected.rejection_reason == "Wrong day"

    def test_decisions_are_final(self, admin_user, employee_user):
        shift = self._submit(employee_user)
        accounting_service.approve_work_shift(work_shift_id=shift.id, admin=admin_user)
        with pytest.raises(PayrollError):
            accounting_service.reject_work_shift(work_shift_id=shift.id, admin=admin_user, reason="late")
        with pytest.raises(PayrollError):
            accounting_service.delete_work_shift(shift.id)

    def test_employee_cannot_approve(self, employee_user):
        shift = self._submit(employee_user)
        with pytest.raises(ForbiddenError):
            accounting_service.approve_work_shift(work_shift_id=shift.id, admin=employee_user)

    def test_pending_can_be_withdrawn(self, employee_user):
        shift = self._submit(employee_user)
        accounting_service.delete_work_shift(shift.id)
        assert accounting_service.list_work_shifts() == []


class TestExpensesAndPurchases:
    def test_expense_type_is_closed_set(self, app):
        with pytest.raises(ValidationError):
            accounting_service.create_expense({"name": "Rent", "amount_cents": 100, "payment_day": "5", "type": "OTHER"})

    def test_purchase_total_follows_quantity(self, app):
        purchase = accounting_service.create_purchase({
            "product_name": "Beer case", "quantity": 4, "unit_cost_cents": 48000,
        })
        assert purchase.total_cost_cents == 192000
        assert purchase.date is not None

        updated = accounting_service.update_purchase(purchase.id, {"quantity": 5})
        assert updated.total_cost_cents == 240000

    def test_purchase_quantity_must_be_positive(self, app):
        with pytest.raises(ValidationError):
            accounting_service.create_purchase({"product_name": "Ice", "quantity": 0, "unit_cost_cents": 100})


class TestMonthlySummary:
    def _session(self, user, status, opened_at, revenue, cost):
        session = ShiftSession(
            opened_by_user_id=user.id,
            status=status,
            opened_at=opened_at,
            initial_inventory=[],
            audit_log=[],
            sales_report={"total_revenue": revenue, "total_cost": cost},
        )
        db.session.add(session)
        db.session.commit()

    def test_summary_combines_every_source(self, admin_user, employee_user):
        self._session(admin_user, STATUS_CLOSED, datetime(2026, 3, 2, 20), 500000, 200000)
        self._session(admin_user, STATUS_PENDING_APPROVAL, datetime(2026, 3, 9, 20), 300000, 100000)
        # Open shifts and other months do not count
        self._session(admin_user, STATUS_OPEN, datetime(2026, 3, 10, 20), 999999, 0)
        self._session(admin_user, STATUS_CLOSED, datetime(2026, 4, 1, 0), 777777, 0)

        accounting_service.create_purchase({
            "date": "2026-03-05T10:00:00Z", "product_name": "Rum", "quantity": 2, "unit_cost_cents": 30000,
        })
        shift = accounting_service.submit_work_shift(
            employee=employee_user, date=datetime(2026, 3, 7),
            start_time="20:00", end_time="02:00", hourly_rate_cents=10000,
        )
        accounting_service.approve_work_shift(work_shift_id=shift.id, admin=admin_user)
        accounting_service.submit_work_shift(
            employee=employee_user, date=datetime(2026, 3, 8),
            start_time="20:00", end_time="02:00", hourly_rate_cents=10000,
        )
        accounting_service.create_expense({"name": "Rent", "amount_cents": 100000, "payment_day": "5"})
        accounting_service.create_expense({
            "name": "Loan", "amount_cents": 50000, "payment_day": "15", "type": "BANK_COMMITMENT",
        })

        summary = accounting_service.monthly_summary(2026, 3)

        assert summary["shift_count"] == 2
        assert summary["revenue_cents"] == 800000
        assert summary["cost_of_goods_cents"] == 300000
        assert summary["purchases_cents"] == 60000
        assert summary["payroll_cents"] == 60000
        assert summary["fixed_expenses_cents"] == 100000
        assert summary["bank_commitments_cents"] == 50000
        assert summary["total_expenses_cents"] == 270000
        assert summary["real_profit_cents"] == 530000

    def test_month_out_of_range(self, app):
        with pytest.raises(ValidationError):
            accounting_service.monthly_summary(2026, 13)
