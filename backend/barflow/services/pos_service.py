# Overview: Service-layer operations for POS checkout; sale creation, drawer open, daily stats.

"""
POS Sales Service

WHY: Tickets rung at the bar are priced from the catalog (never from the
client), include VAT in the shelf price, and open the cash drawer for cash
tenders.

PRICING:
    subtotal = sum(quantity x sale_price)
    tax      = VAT contained in subtotal = subtotal - round(subtotal / 1.19)
    total    = subtotal + tip
    change   = max(0, cash_received - total)          (CASH only)

DRAWER: The sale is committed first. Opening the drawer afterwards can
never fail the sale: hardware errors are logged and recorded as a
simulated open.
"""

from __future__ import annotations

from datetime import date as date_type

from flask import current_app

from ..extensions import db
from ..models import PosPayment, PosSale, PosSaleItem, Product, ShiftSession, User
from ..models.drawer import EVENT_SALE
from ..models.pos import POS_PAYMENT_METHODS
from ..models.shifts import STATUS_OPEN
from ..validation import ConflictError, NotFoundError, ValidationError, parse_amount_cents
from barflow.time_utils import day_bounds, utcnow
from . import alerts_service


VAT_RATE = 0.19
TENDER_METHODS = {"CASH", "CARD", "TRANSFER"}
DRAWER_METHODS = {"CASH", "MIXED"}


class PosError(ConflictError):
    """Raised when a sale cannot be completed (inactive product, short cash)."""
    pass


def included_tax(subtotal_cents: int, rate: float = VAT_RATE) -> int:
    return subtotal_cents - int(round(subtotal_cents / (1 + rate)))


def _parse_lines(items) -> list[tuple[Product, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("items entries must be objects")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError("product_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be an integer > 0")

        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_active:
            raise PosError(f"Product {product.name} is not active")
        lines.append((product, quantity))
    return lines


def _parse_payments(payments, total_cents: int) -> list[tuple[str, int]]:
    if not isinstance(payments, list) or not payments:
        raise ValidationError("payments are required for MIXED sales")
    parsed = []
    for raw in payments:
        if not isinstance(raw, dict):
            raise ValidationError("payments entries must be objects")
        method = raw.get("method")
        if method not in TENDER_METHODS:
            raise ValidationError(f"payment method must be one of: {', '.join(sorted(TENDER_METHODS))}")
        parsed.append((method, parse_amount_cents(raw.get("amount_cents"), "amount_cents")))
    if sum(amount for _, amount in parsed) != total_cents:
        raise ValidationError("payments must add up to the sale total")
    return parsed


def create_sale(
    *,
    employee: User,
    items,
    payment_method: str,
    cash_received_cents=None,
    tip_cents=0,
    notes: str | None = None,
    payments=None,
    drawer=None,
) -> PosSale:
    """
    Price, persist and (for cash tenders) open the drawer.

    Raises:
        ValidationError: malformed lines, tender or amounts
        NotFoundError: unknown product
        PosError: inactive product, cash received below total
    """
    if payment_method not in POS_PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(sorted(POS_PAYMENT_METHODS))}")

    lines = _parse_lines(items)
    tip = parse_amount_cents(tip_cents or 0, "tip_cents", allow_zero=True)

    subtotal = sum(product.sale_price_cents * quantity for product, quantity in lines)
    total = subtotal + tip

    cash_received = None
    change = None
    if payment_method == "CASH":
        if cash_received_cents is None:
            raise ValidationError("cash_received_cents is required for cash sales")
        cash_received = parse_amount_cents(cash_received_cents, "cash_received_cents", allow_zero=True)
        if cash_received < total:
            raise PosError(f"Cash received ({cash_received}) is less than the total ({total})")
        change = max(0, cash_received - total)
        tenders = [("CASH", total)]
    elif payment_method == "MIXED":
        tenders = _parse_payments(payments, total)
    else:
        tenders = [(payment_method, total)]

    open_session = db.session.query(ShiftSession).filter_by(status=STATUS_OPEN).first()

    sale = PosSale(
        shift_session_id=open_session.id if open_session else None,
        employee_id=employee.id,
        employee_name=employee.name,
        subtotal_cents=subtotal,
        tax_cents=included_tax(subtotal),
        tip_cents=tip,
        total_cents=total,
        payment_method=payment_method,
        cash_received_cents=cash_received,
        change_cents=change,
        drawer_opened=False,
        notes=(notes or "").strip() or None,
        created_at=utcnow(),
    )
    for product, quantity in lines:
        sale.items.append(PosSaleItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price_cents=product.sale_price_cents,
            subtotal_cents=product.sale_price_cents * quantity,
            cost_price_cents=product.cost_price_cents or 0,
        ))
        if product.stock is not None:
            product.stock = max(0, product.stock - quantity)
    for method, amount in tenders:
        sale.payments.append(PosPayment(method=method, amount_cents=amount))

    db.session.add(sale)
    db.session.commit()

    if payment_method in DRAWER_METHODS:
        simulated = alerts_service.open_drawer_for(drawer)
        sale.drawer_opened = True
        alerts_service.log_drawer_open(
            event_type=EVENT_SALE,
            user=employee,
            is_authorized=True,
            sale_id=sale.id,
            simulated=simulated,
            commit=False,
        )
        db.session.commit()

    current_app.logger.info("POS sale %s by %s: %s %s", sale.id, employee.username, payment_method, total)
    return sale


def get_sale(sale_id: int) -> PosSale:
    sale = db.session.get(PosSale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(day: date_type | None = None) -> list[PosSale]:
    """Sales for one UTC calendar day (today when omitted), newest first."""
    start, end = day_bounds(day or utcnow().date())
    return (
        db.session.query(PosSale)
        .filter(PosSale.created_at >= start, PosSale.created_at < end)
        .order_by(PosSale.created_at.desc(), PosSale.id.desc())
        .all()
    )


def daily_stats(day: date_type | None = None) -> dict:
    """
    Totals for one day. Per-method totals come from the payment rows, so the
    tenders of a MIXED sale land in their own methods.
    """
    sales = list_sales(day)
    by_method = {method: 0 for method in TENDER_METHODS}
    for sale in sales:
        for payment in sale.payments:
            by_method[payment.method] = by_method.get(payment.method, 0) + payment.amount_cents

    total_revenue = sum(s.total_cents for s in sales)
    count = len(sales)
    return {
        "date": (day or utcnow().date()).isoformat(),
        "transaction_count": count,
        "total_revenue_cents": total_revenue,
        "total_cash_cents": by_method["CASH"],
        "total_card_cents": by_method["CARD"],
        "total_transfer_cents": by_method["TRANSFER"],
        "total_tips_cents": sum(s.tip_cents for s in sales),
        "total_tax_cents": sum(s.tax_cents for s in sales),
        "average_ticket_cents": int(round(total_revenue / count)) if count else 0,
        "drawer_open_count": sum(1 for s in sales if s.drawer_opened),
    }
