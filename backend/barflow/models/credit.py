from __future__ import annotations

from ..extensions import db
from barflow.time_utils import to_utc_z


TYPE_DEBT = "DEBT"
TYPE_PAYMENT = "PAYMENT"
TRANSACTION_TYPES = {TYPE_DEBT, TYPE_PAYMENT}

METHOD_CASH = "CASH"
METHOD_TRANSFER = "TRANSFER"
METHOD_CARD = "CARD"
PAYMENT_METHODS = {METHOD_CASH, METHOD_TRANSFER, METHOD_CARD}


class CreditCustomer(db.Model):
    """
    Customer allowed to drink on credit ("fiao").

    WHY: current_used_cents is the running balance owed. It is denormalized
    from the transaction ledger and only ever changed in the same database
    transaction that appends a CreditTransaction.
    """
    __tablename__ = "credit_customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    document_id = db.Column(db.String(32), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    max_limit_cents = db.Column(db.Integer, nullable=False)
    current_used_cents = db.Column(db.Integer, nullable=False, default=0)

    observations = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def available_cents(self) -> int:
        return self.max_limit_cents - self.current_used_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "document_id": self.document_id,
            "phone": self.phone,
            "max_limit_cents": self.max_limit_cents,
            "current_used_cents": self.current_used_cents,
            "available_cents": self.available_cents,
            "observations": self.observations,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class CreditTransaction(db.Model):
    """
    Append-only credit ledger entry.

    TRANSACTION TYPES:
    - DEBT: Drinks served on credit (not collected as cash at the till)
    - PAYMENT: Customer pays down the balance; payment_method says how

    WHY: Shift close sums DEBT and CASH payments inside the shift window to
    correct the theoretical cash in the drawer.
    """
    __tablename__ = "credit_transactions"
    __table_args__ = (
        db.Index("ix_credit_transactions_customer_date", "customer_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("credit_customers.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    employee_name = db.Column(db.String(128), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    payment_method = db.Column(db.String(16), nullable=True)
    observation = db.Column(db.Text, nullable=False, default="")

    customer = db.relationship("CreditCustomer", backref=db.backref("transactions", lazy=True))
    employee = db.relationship("User", backref=db.backref("credit_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "amount_cents": self.amount_cents,
            "date": to_utc_z(self.date),
            "type": self.type,
            "payment_method": self.payment_method,
            "observation": self.observation,
        }
