"""
Credit ledger: balances always equal the sum of the ledger.
"""

from datetime import datetime, timedelta
from unittest import mock

import pytest
from sqlalchemy.orm.exc import StaleDataError

from barflow.extensions import db
from barflow.models import CreditTransaction
from barflow.services import credit_service
from barflow.services.credit_service import CreditError
from barflow.validation import NotFoundError, ValidationError


@pytest.fixture
def customer(app):
    return credit_service.create_customer({"name": "Don Jose", "document_id": "1020", "max_limit_cents": 50000})


def _ledger_balance(customer_id):
    balance = 0
    for tx in db.session.query(CreditTransaction).filter_by(customer_id=customer_id):
        balance += tx.amount_cents if tx.type == "DEBT" else -tx.amount_cents
    return balance


class TestCustomers:
    def test_create_starts_at_zero(self, customer):
        assert customer.current_used_cents == 0
        assert customer.available_cents == 50000
        assert customer.is_active is True

    def test_create_requires_name_and_limit(self, app):
        with pytest.raises(ValidationError):
            credit_service.create_customer({"name": "No limit"})

    def test_balance_is_not_writable(self, customer):
        with pytest.raises(ValidationError):
            credit_service.update_customer(customer.id, {"current_used_cents": 0})

    def test_search_by_name_or_document(self, customer):
        credit_service.create_customer({"name": "Maria", "max_limit_cents": 1000})
        assert [c.name for c in credit_service.list_customers(search="jose")] == ["Don Jose"]
        assert [c.name for c in credit_service.list_customers(search="1020")] == ["Don Jose"]


class TestRegisterTransaction:
    def test_debt_then_payment(self, customer, admin_user):
        credit_service.register_transaction(customer_id=customer.id, tx_type="DEBT", amount_cents=20000, employee=admin_user)
        tx, updated = credit_service.register_transaction(
            customer_id=customer.id, tx_type="PAYMENT", amount_cents=5000,
            employee=admin_user, payment_method="TRANSFER", observation=" abono ",
        )

        assert updated.current_used_cents == 15000
        assert tx.payment_method == "TRANSFER"
        assert tx.observation == "abono"
        assert tx.employee_name == "Ana Admin"
        assert _ledger_balance(customer.id) == updated.current_used_cents

    def test_debt_payment_method_is_dropped(self, customer, admin_user):
        tx, _ = credit_service.register_transaction(
            customer_id=customer.id, tx_type="DEBT", amount_cents=100,
            employee=admin_user, payment_method="CASH",
        )
        assert tx.payment_method is None

    def test_debt_over_limit_is_rejected_without_side_effects(self, customer, admin_user):
        credit_service.register_transaction(customer_id=customer.id, tx_type="DEBT", amount_cents=45000, employee=admin_user)

        with pytest.raises(CreditError):
            credit_service.register_transaction(customer_id=customer.id, tx_type="DEBT", amount_cents=5001, employee=admin_user)

        db.session.expire_all()
        assert credit_service.get_customer(customer.id).current_used_cents == 45000
        assert db.session.query(CreditTransaction).count() == 1

    def test_debt_up_to_limit_is_allowed(self, customer, admin_user):
        _, updated = credit_service.register_transaction(
            customer_id=customer.id, tx_type="DEBT", amount_cents=50000, employee=admin_user,
        )
        assert updated.available_cents == 0

    def test_inactive_customer_cannot_take_debt(self, customer, admin_user):
        credit_service.update_customer(customer.id, {"is_active": False})
        with pytest.raises(CreditError):
            credit_service.register_transaction(customer_id=customer.id, tx_type="DEBT", amount_cents=100, employee=admin_user)

    def test_inactive_customer_can_still_pay(self, customer, admin_user):
        credit_service.register_transaction(customer_id=customer.id, tx_type="DEBT", amount_cents=1000, employee=admin_user)
        credit_service.update_customer(customer.id, {"is_active": False})

        _, updated = credit_service.register_transaction(
            customer_id=customer.id, tx_type="PAYMENT", amount_cents=1000,
            employee=admin_user, payment_method="CASH",
        )
        assert updated.current_used_cents == 0

    @pytest.mark.parametrize("kwargs", [
        {"tx_type": "REFUND", "amount_cents": 100},
        {"tx_type": "DEBT", "amount_cents": 0},
        {"tx_type": "DEBT", "amount_cents": -5},
        {"tx_type": "DEBT", "amount_cents": 10.5},
        {"tx_type": "PAYMENT", "amount_cents": 100},
        {"tx_type": "PAYMENT", "amount_cents": 100, "payment_method": "BITCOIN"},
    ])
    def test_invalid_input(self, customer, admin_user, kwargs):
        with pytest.raises(ValidationError):
            credit_service.register_transaction(customer_id=customer.id, employee=admin_user, **kwargs)

    def test_unknown_customer(self, app, admin_user):
        with pytest.raises(NotFoundError):
            credit_service.register_transaction(customer_id=999, tx_type="DEBT", amount_cents=100, employee=admin_user)

    def test_stale_version_is_retried(self, customer, admin_user):
        real_commit = db.session.commit
        calls = {"n": 0}

        def flaky_commit():
            calls["n"] += 1
            if calls["n"] == 1:
                raise StaleDataError("concurrent update")
            return real_commit()

        with mock.patch.object(db.session, "commit", side_effect=flaky_commit):
            _, updated = credit_service.register_transaction(
                customer_id=customer.id, tx_type="DEBT", amount_cents=700, employee=admin_user,
            )

        assert calls["n"] == 2
        assert updated.current_used_cents == 700
        assert db.session.query(CreditTransaction).count() == 1


class TestHistory:
    def test_history_newest_first(self, customer, admin_user):
        base = datetime(2026, 3, 1, 20, 0)
        for offset, amount in enumerate([100, 200, 300]):
            credit_service.register_transaction(
                customer_id=customer.id, tx_type="DEBT", amount_cents=amount,
                employee=admin_user, date=base + timedelta(hours=offset),
            )
        assert [t.amount_cents for t in credit_service.customer_history(customer.id)] == [300, 200, 100]

    def test_range_is_half_open(self, customer, admin_user):
        base = datetime(2026, 3, 1, 20, 0)
        for offset in range(3):
            credit_service.register_transaction(
                customer_id=customer.id, tx_type="DEBT", amount_cents=100 * (offset + 1),
                employee=admin_user, date=base + timedelta(hours=offset),
            )
        rows = credit_service.transactions_in_range(base, base + timedelta(hours=2))
        assert [t.amount_cents for t in rows] == [100, 200]

    def test_range_requires_order(self, app):
        now = datetime(2026, 3, 1)
        with pytest.raises(ValidationError):
            credit_service.transactions_in_range(now, now)
