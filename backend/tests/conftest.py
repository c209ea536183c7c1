"""
Pytest fixtures for BarFlow backend tests.

Provides a fresh SQLite database per test, staff fixtures, a small catalog,
and auth helpers for the Flask test client.
"""

import pytest

from barflow import create_app
from barflow.extensions import db
from barflow.models import Product
from barflow.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from barflow.services.auth_service import create_user


PASSWORD = "Password123"


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing, with the drawer forced into simulation."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'barflow-test.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CASH_DRAWER_SIMULATION': True,
        'CASH_DRAWER_MAX_OPEN_MS': 50,
        'CASH_MISMATCH_TOLERANCE_CENTS': 1000,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

    app.extensions["cash_drawer"].disconnect()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def admin_user(app):
    return create_user(username="admin", name="Ana Admin", password=PASSWORD, role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def employee_user(app):
    return create_user(username="empleado", name="Eva Empleada", password=PASSWORD, role=ROLE_EMPLOYEE)


@pytest.fixture(scope='function')
def products(app):
    """Beer A (5000 / 2000) and rum B (60000 / 30000)."""
    beer = Product(name="Beer", category="Cerveza", cost_price_cents=2000, sale_price_cents=5000,
                   is_active=True, quick_sale=True, display_order=1)
    rum = Product(name="Rum", category="Licor", cost_price_cents=30000, sale_price_cents=60000,
                  is_active=True, quick_sale=True, display_order=2)
    db.session.add_all([beer, rum])
    db.session.commit()
    return beer, rum


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def employee_headers(client, employee_user):
    return auth_headers(get_auth_token(client, "empleado"))
