# Overview: Pure shift-close arithmetic; no database access, no side effects.

"""
Shift reconciliation.

WHY: The bar counts bottles instead of ringing every drink. Revenue for a
shift is what disappeared from the shelf between the opening and the closing
count, valued at sale price. Credit activity inside the shift window then
corrects the cash the drawer should hold:

    cash_to_deliver = revenue - credit_sales + cash_payments
    difference      = real_cash - cash_to_deliver

Non-cash credit payments (transfer/card) are reported but never touch the
drawer.

DESIGN: build_sales_report() takes plain inputs (products, snapshots, ledger
rows) so it can be tested without a database. The shift service does the
fetching.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from ..models.credit import METHOD_CASH, TYPE_DEBT, TYPE_PAYMENT


@dataclass(frozen=True)
class SoldItem:
    product_id: int
    product_name: str
    quantity: int
    revenue: int
    cost: int
    profit: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "revenue": self.revenue,
            "cost": self.cost,
            "profit": self.profit,
        }


@dataclass(frozen=True)
class SalesReport:
    """Immutable once computed; amounts are integer cents."""
    total_revenue: int
    total_cost: int
    total_profit: int
    total_credit_sales: int
    total_cash_payments: int
    total_non_cash_payments: int
    cash_to_deliver: int
    difference: int
    items_sold: tuple[SoldItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "total_revenue": self.total_revenue,
            "total_cost": self.total_cost,
            "total_profit": self.total_profit,
            "total_credit_sales": self.total_credit_sales,
            "total_cash_payments": self.total_cash_payments,
            "total_non_cash_payments": self.total_non_cash_payments,
            "cash_to_deliver": self.cash_to_deliver,
            "difference": self.difference,
            "items_sold": [item.to_dict() for item in self.items_sold],
        }


def inventory_counts(snapshot: Iterable[Mapping] | None) -> dict[int, int]:
    """Collapse a [{"product_id", "count"}, ...] snapshot into {product_id: count}."""
    counts: dict[int, int] = {}
    for row in snapshot or ():
        counts[int(row["product_id"])] = int(row.get("count") or 0)
    return counts


def sold_quantity(initial: int, final: int) -> int:
    """Units gone from the shelf; a count that went up (unlogged restock) sells nothing."""
    return max(0, initial - final)


def in_window(moment: datetime, opened_at: datetime, closed_at: datetime | None) -> bool:
    """Half-open shift window [opened_at, closed_at)."""
    if moment < opened_at:
        return False
    return closed_at is None or moment < closed_at


def build_sales_report(
    *,
    products: Sequence,
    initial_inventory: Iterable[Mapping] | None,
    final_inventory: Iterable[Mapping] | None,
    transactions: Iterable,
    real_cash_cents: int,
    opened_at: datetime | None = None,
    closed_at: datetime | None = None,
) -> SalesReport:
    """
    Compute the SalesReport for a shift close.

    Args:
        products: Active products (id, name, sale_price_cents, cost_price_cents).
            Inactive products are skipped if passed in.
        initial_inventory / final_inventory: Snapshots; a product missing from
            either one counts as 0 there.
        transactions: Credit ledger rows (type, amount_cents, payment_method, date).
        real_cash_cents: Cash physically counted at close.
        opened_at / closed_at: When given, transactions outside
            [opened_at, closed_at) are ignored.
    """
    initial = inventory_counts(initial_inventory)
    final = inventory_counts(final_inventory)

    items: list[SoldItem] = []
    total_revenue = 0
    total_cost = 0

    for product in products:
        if getattr(product, "is_active", True) is False:
            continue
        quantity = sold_quantity(initial.get(product.id, 0), final.get(product.id, 0))
        if quantity == 0:
            continue
        revenue = quantity * int(product.sale_price_cents or 0)
        cost = quantity * int(product.cost_price_cents or 0)
        total_revenue += revenue
        total_cost += cost
        items.append(SoldItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            revenue=revenue,
            cost=cost,
            profit=revenue - cost,
        ))

    credit_sales = 0
    cash_payments = 0
    non_cash_payments = 0
    for tx in transactions:
        if opened_at is not None and not in_window(tx.date, opened_at, closed_at):
            continue
        if tx.type == TYPE_DEBT:
            credit_sales += tx.amount_cents
        elif tx.type == TYPE_PAYMENT:
            if tx.payment_method == METHOD_CASH:
                cash_payments += tx.amount_cents
            else:
                non_cash_payments += tx.amount_cents

    cash_to_deliver = total_revenue - credit_sales + cash_payments

    return SalesReport(
        total_revenue=total_revenue,
        total_cost=total_cost,
        total_profit=total_revenue - total_cost,
        total_credit_sales=credit_sales,
        total_cash_payments=cash_payments,
        total_non_cash_payments=non_cash_payments,
        cash_to_deliver=cash_to_deliver,
        difference=real_cash_cents - cash_to_deliver,
        items_sold=tuple(items),
    )
