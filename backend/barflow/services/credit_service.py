# Overview: Service-layer operations for the credit ("fiao") ledger; customers, transactions, balances.

"""
Credit Ledger Service

WHY: Regulars drink on credit and settle later. The customer's running
balance (current_used_cents) must always equal the sum of its ledger.

ATOMICITY: register_transaction() locks the customer row, inserts the
CreditTransaction and adjusts the balance, then commits once. Any failure
rolls both back; there is never a ledger row without its balance change or
the other way around. The customer's version_id column turns a concurrent
update that slipped past the lock (SQLite) into a StaleDataError, which is
retried.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import CreditCustomer, CreditTransaction, User
from ..models.credit import PAYMENT_METHODS, TRANSACTION_TYPES, TYPE_DEBT, TYPE_PAYMENT
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_amount_range,
    parse_amount_cents,
    validate_payload,
)
from barflow.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


class CreditError(ConflictError):
    """Raised when a transaction breaks a ledger rule (limit, inactive customer)."""
    pass


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "document_id", "phone", "max_limit_cents", "observations", "is_active"},
    required_on_create={"name", "max_limit_cents"},
)


def get_customer(customer_id: int) -> CreditCustomer:
    customer = db.session.get(CreditCustomer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(*, active_only: bool = False, search: str | None = None) -> list[CreditCustomer]:
    query = db.session.query(CreditCustomer)
    if active_only:
        query = query.filter(CreditCustomer.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(CreditCustomer.name.ilike(like), CreditCustomer.document_id.ilike(like)))
    return query.order_by(CreditCustomer.name.asc(), CreditCustomer.id.asc()).all()


def create_customer(payload) -> CreditCustomer:
    patch = validate_payload(model=CreditCustomer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_amount_range(patch, "max_limit_cents")

    customer = CreditCustomer(current_used_cents=0, is_active=True)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, payload) -> CreditCustomer:
    """
    Patch customer fields. The balance is never writable here; only the
    ledger moves it.
    """
    patch = validate_payload(model=CreditCustomer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_amount_range(patch, "max_limit_cents")

    customer = get_customer(customer_id)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def register_transaction(
    *,
    customer_id: int,
    tx_type: str,
    amount_cents,
    employee: User,
    payment_method: str | None = None,
    observation: str | None = None,
    date: datetime | None = None,
) -> tuple[CreditTransaction, CreditCustomer]:
    """
    Append a DEBT or PAYMENT and move the customer's balance in one commit.

    DEBT +amount, PAYMENT -amount.

    Raises:
        ValidationError: bad type/amount/method
        NotFoundError: unknown customer
        CreditError: inactive customer taking debt, or debt above the limit
    """
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(sorted(TRANSACTION_TYPES))}")
    amount = parse_amount_cents(amount_cents, "amount_cents")

    if tx_type == TYPE_PAYMENT:
        if not payment_method:
            raise ValidationError("payment_method is required for payments")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of: {', '.join(sorted(PAYMENT_METHODS))}")
    else:
        payment_method = None

    def _op():
        customer = lock_for_update(
            db.session.query(CreditCustomer).filter(CreditCustomer.id == customer_id)
        ).first()
        if not customer:
            raise NotFoundError("Customer not found")

        if tx_type == TYPE_DEBT:
            if not customer.is_active:
                raise CreditError("Inactive customers cannot take new debt")
            new_balance = customer.current_used_cents + amount
            if new_balance > customer.max_limit_cents:
                raise CreditError(
                    f"Credit limit exceeded: available {customer.available_cents}, requested {amount}"
                )
        else:
            new_balance = customer.current_used_cents - amount

        tx = CreditTransaction(
            customer_id=customer.id,
            employee_id=employee.id,
            employee_name=employee.name,
            amount_cents=amount,
            date=date or utcnow(),
            type=tx_type,
            payment_method=payment_method,
            observation=(observation or "").strip(),
        )
        db.session.add(tx)
        customer.current_used_cents = new_balance
        db.session.commit()
        return tx, customer

    try:
        tx, customer = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Credit %s of %s for customer %s by %s (balance %s)",
        tx_type, amount, customer.id, employee.username, customer.current_used_cents,
    )
    return tx, customer


def customer_history(customer_id: int) -> list[CreditTransaction]:
    get_customer(customer_id)
    return (
        db.session.query(CreditTransaction)
        .filter(CreditTransaction.customer_id == customer_id)
        .order_by(CreditTransaction.date.desc(), CreditTransaction.id.desc())
        .all()
    )


def transactions_in_range(start: datetime, end: datetime) -> list[CreditTransaction]:
    """Ledger rows with start <= date < end, oldest first."""
    if end <= start:
        raise ValidationError("endDate must be after startDate")
    return (
        db.session.query(CreditTransaction)
        .filter(CreditTransaction.date >= start, CreditTransaction.date < end)
        .order_by(CreditTransaction.date.asc(), CreditTransaction.id.asc())
        .all()
    )
