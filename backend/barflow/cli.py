# Overview: Flask CLI command groups for bootstrap, inspection, and hardware checks.

# backend/barflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the config row and default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username maria --name "Maria" --role EMPLOYEE
#
# Catalog:
# - python -m flask products seed
#   Load a starter bar catalog (skips products that already exist by name).
#
# Hardware:
# - python -m flask drawer test [--port COM3] [--simulate]
#   Connect to the cash drawer and fire one open pulse.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User
from .models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from .services import settings_service
from .services.auth_service import create_user, PasswordValidationError
from .services.drawer_service import DrawerError, create_drawer_service
from .validation import ConflictError


DEFAULT_PASSWORD = "Barflow123"

STARTER_CATALOG = [
    # name, category, cost_cents, sale_cents
    ("Aguila", "Cerveza", 250000, 500000),
    ("Club Colombia", "Cerveza", 280000, 550000),
    ("Poker", "Cerveza", 240000, 450000),
    ("Aguardiente Antioqueno 375ml", "Licor", 2800000, 5500000),
    ("Ron Medellin 375ml", "Licor", 3000000, 6000000),
    ("Gaseosa", "Bebida", 120000, 300000),
    ("Agua", "Bebida", 80000, 250000),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize BarFlow: schema, config row, and default users.

    Creates:
    - All tables (no-op for existing ones)
    - The default config row
    - Users: admin (ADMIN), empleado (EMPLOYEE)
    - All passwords default to: "Barflow123"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing BarFlow...")

    db.create_all()
    cfg = settings_service.get_config()
    click.echo(f"PASS Config ready: {cfg.bar_name}")

    default_users = [
        ("admin", "Administrador", ROLE_ADMIN),
        ("empleado", "Empleado", ROLE_EMPLOYEE),
    ]
    for username, name, role in default_users:
        try:
            create_user(username=username, name=name, password=DEFAULT_PASSWORD, role=role)
            click.echo(f"PASS Created user: {username} ({role})")
        except ConflictError:
            click.echo(f"WARN  User '{username}' already exists, skipping...")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   admin    / {DEFAULT_PASSWORD}")
    click.echo(f"   empleado / {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([ROLE_ADMIN, ROLE_EMPLOYEE]), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, name, password, role):
    """
    Create a new user.

    Password: 8+ chars with at least one letter and one digit.
    """
    try:
        user = create_user(username=username, name=name, password=password, role=role)
        click.echo(f"PASS Created user: {user.username} ({user.role})")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<10} {'Active'}")
    click.echo("="*70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {user.role:<10} {active_str}")
    click.echo("="*70 + "\n")


@click.group('products')
def products_group():
    """Catalog bootstrap commands."""


@products_group.command('seed')
@with_appcontext
def seed_products():
    """Load the starter catalog; existing names are left untouched."""
    existing = {name for (name,) in db.session.query(Product.name).all()}
    created = 0
    for order, (name, category, cost, price) in enumerate(STARTER_CATALOG):
        if name in existing:
            continue
        db.session.add(Product(
            name=name,
            category=category,
            cost_price_cents=cost,
            sale_price_cents=price,
            is_active=True,
            quick_sale=True,
            display_order=order,
        ))
        created += 1
    db.session.commit()
    click.echo(f"PASS Seeded {created} products ({len(STARTER_CATALOG) - created} already present)")


@click.group('drawer')
def drawer_group():
    """Cash drawer hardware checks."""


@drawer_group.command('test')
@click.option('--port', default=None, help='Serial port (defaults to CASH_DRAWER_PORT or the platform default)')
@click.option('--baud-rate', type=int, default=None, help='Baud rate')
@click.option('--simulate', is_flag=True, help='Force simulation mode')
@with_appcontext
def test_drawer(port, baud_rate, simulate):
    """Connect and fire one open pulse."""
    drawer = create_drawer_service(
        {
            "port": port or current_app.config.get("CASH_DRAWER_PORT"),
            "baud_rate": baud_rate or current_app.config.get("CASH_DRAWER_BAUD_RATE"),
            "max_drawer_open_ms": 500,
        },
        simulation=True if simulate else None,
    )
    drawer.on("event", lambda event: click.echo(f"EVENT {event.type} port={event.port} error={event.error}"))
    try:
        drawer.connect()
        drawer.send_pulse()
        click.echo(f"PASS Pulse sent on {drawer.port_name} (simulation={drawer.is_simulation})")
    except DrawerError as e:
        click.echo(f"FAIL Drawer test failed: {str(e)}")
    finally:
        drawer.disconnect()


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(drawer_group)
