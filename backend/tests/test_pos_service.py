"""
POS checkout: pricing, tenders, drawer logging, daily stats.
"""

from unittest import mock

import pytest

from barflow.extensions import db
from barflow.models import DrawerLog
from barflow.services import pos_service, shift_service
from barflow.services.drawer_service import DrawerCommandError
from barflow.services.pos_service import PosError, included_tax
from barflow.validation import NotFoundError, ValidationError


@pytest.fixture
def drawer(app):
    return app.extensions["cash_drawer"]


class TestPricing:
    def test_included_tax(self):
        assert included_tax(10000) == 1597
        assert included_tax(0) == 0

    def test_cash_sale_prices_from_catalog(self, employee_user, products, drawer):
        beer, rum = products
        sale = pos_service.create_sale(
            employee=employee_user,
            items=[{"product_id": beer.id, "quantity": 2}, {"product_id": rum.id, "quantity": 1}],
            payment_method="CASH",
            cash_received_cents=80000,
            tip_cents=1000,
            drawer=drawer,
        )

        assert sale.subtotal_cents == 70000
        assert sale.total_cents == 71000
        assert sale.change_cents == 9000
        assert sale.tax_cents == included_tax(70000)
        assert [(i.product_name, i.quantity, i.cost_price_cents) for i in sale.items] == [
            ("Beer", 2, 2000), ("Rum", 1, 30000),
        ]
        assert [(p.method, p.amount_cents) for p in sale.payments] == [("CASH", 71000)]

    def test_short_cash_is_rejected(self, employee_user, products, drawer):
        beer, _ = products
        with pytest.raises(PosError):
            pos_service.create_sale(
                employee=employee_user, items=[{"product_id": beer.id, "quantity": 1}],
                payment_method="CASH", cash_received_cents=4999, drawer=drawer,
            )

    def test_inactive_product_is_rejected(self, employee_user, products, drawer):
        beer, _ = products
        beer.is_active = False
        db.session.commit()
        with pytest.raises(PosError):
            pos_service.create_sale(
                employee=employee_user, items=[{"product_id": beer.id, "quantity": 1}],
                payment_method="CARD", drawer=drawer,
            )

    @pytest.mark.parametrize("items", [[], None, [{"product_id": 1, "quantity": 0}], [{"product_id": "1", "quantity": 1}]])
    def test_malformed_lines(self, employee_user, products, drawer, items):
        with pytest.raises(ValidationError):
            pos_service.create_sale(employee=employee_user, items=items, payment_method="CARD", drawer=drawer)

    def test_unknown_product(self, employee_user, products, drawer):
        with pytest.raises(NotFoundError):
            pos_service.create_sale(
                employee=employee_user, items=[{"product_id": 999, "quantity": 1}],
                payment_method="CARD", drawer=drawer,
            )

    def test_stock_is_decremented_when_tracked(self, employee_user, products, drawer):
        beer, rum = products
        beer.stock = 3
        db.session.commit()
        pos_service.create_sale(
            employee=employee_user,
            items=[{"product_id": beer.id, "quantity": 2}, {"product_id": rum.id, "quantity": 1}],
            payment_method="CARD",
            drawer=drawer,
        )
        assert beer.stock == 1
        assert rum.stock is None


class TestTenders:
    def test_mixed_payments_must_add_up(self, employee_user, products, drawer):
        beer, _ = products
        with pytest.raises(ValidationError):
            pos_service.create_sale(
                employee=employee_user, items=[{"product_id": beer.id, "quantity": 2}],
                payment_method="MIXED",
                payments=[{"method": "CASH", "amount_cents": 5000}, {"method": "CARD", "amount_cents": 4000}],
                drawer=drawer,
            )

    def test_mixed_sale_opens_drawer(self, employee_user, products, drawer):
        beer, _ = products
        sale = pos_service.create_sale(
            employee=employee_user, items=[{"product_id": beer.id, "quantity": 2}],
            payment_method="MIXED",
            payments=[{"method": "CASH", "amount_cents": 6000}, {"method": "TRANSFER", "amount_cents": 4000}],
            drawer=drawer,
        )
        assert sale.drawer_opened is True
        log = db.session.query(DrawerLog).one()
        assert log.event_type == "SALE"
        assert log.sale_id == sale.id
        assert log.simulated is True

    def test_card_sale_leaves_drawer_closed(self, employee_user, products, drawer):
        beer, _ = products
        sale = pos_service.create_sale(
            employee=employee_user, items=[{"product_id": beer.id, "quantity": 1}],
            payment_method="CARD", drawer=drawer,
        )
        assert sale.drawer_opened is False
        assert sale.cash_received_cents is None
        assert db.session.query(DrawerLog).count() == 0

    def test_drawer_failure_never_fails_the_sale(self, employee_user, products, drawer):
        beer, _ = products
        with mock.patch.object(drawer, "open_drawer", side_effect=DrawerCommandError("port gone")):
            sale = pos_service.create_sale(
                employee=employee_user, items=[{"product_id": beer.id, "quantity": 1}],
                payment_method="CASH", cash_received_cents=5000, drawer=drawer,
            )
        assert sale.id is not None
        assert db.session.query(DrawerLog).one().simulated is True

    def test_sale_links_to_open_shift(self, admin_user, employee_user, products, drawer):
        beer, _ = products
        session = shift_service.open_shift(user=admin_user)
        sale = pos_service.create_sale(
            employee=employee_user, items=[{"product_id": beer.id, "quantity": 1}],
            payment_method="TRANSFER", drawer=drawer,
        )
        assert sale.shift_session_id == session.id


class TestDailyStats:
    def test_stats_split_tenders(self, employee_user, products, drawer):
        beer, rum = products
        pos_service.create_sale(
            employee=employee_user, items=[{"product_id": beer.id, "quantity": 1}],
            payment_method="CASH", cash_received_cents=10000, tip_cents=500, drawer=drawer,
        )
        pos_service.create_sale(
            employee=employee_user, items=[{"product_id": rum.id, "quantity": 1}],
            payment_method="MIXED",
            payments=[{"method": "CARD", "amount_cents": 40000}, {"method": "CASH", "amount_cents": 20000}],
            drawer=drawer,
        )

        stats = pos_service.daily_stats()

        assert stats["transaction_count"] == 2
        assert stats["total_revenue_cents"] == 65500
        assert stats["total_cash_cents"] == 25500
        assert stats["total_card_cents"] == 40000
        assert stats["total_transfer_cents"] == 0
        assert stats["total_tips_cents"] == 500
        assert stats["average_ticket_cents"] == 32750
        assert stats["drawer_open_count"] == 2

    def test_empty_day(self, app):
        stats = pos_service.daily_stats()
        assert stats["transaction_count"] == 0
        assert stats["average_ticket_cents"] == 0
