"""
Flask CLI bootstrap commands.
"""

from barflow.extensions import db
from barflow.models import AppConfig, Product, User


class TestSystemCommands:
    def test_init_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0, first.output
        assert "PASS Created user: admin (ADMIN)" in first.output

        second = runner.invoke(args=["system", "init"])
        assert "already exists" in second.output

        assert db.session.query(User).count() == 2
        assert db.session.query(AppConfig).count() == 1

    def test_reset_db_requires_confirmation(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "reset-db"], input="n\n")
        assert result.exit_code != 0


class TestUserCommands:
    def test_create_and_list(self, app):
        runner = app.test_cli_runner()
        created = runner.invoke(args=[
            "users", "create", "--username", "luis", "--name", "Luis",
            "--password", "Barman2026", "--role", "EMPLOYEE",
        ])
        assert "PASS Created user: luis (EMPLOYEE)" in created.output

        weak = runner.invoke(args=[
            "users", "create", "--username", "weak", "--name", "Weak",
            "--password", "short", "--role", "EMPLOYEE",
        ])
        assert "FAIL Password validation failed" in weak.output

        listed = runner.invoke(args=["users", "list"])
        assert "luis" in listed.output


class TestCatalogAndDrawerCommands:
    def test_seed_skips_existing(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=["products", "seed"])
        count = db.session.query(Product).count()
        assert count > 0

        again = runner.invoke(args=["products", "seed"])
        assert "PASS Seeded 0 products" in again.output
        assert db.session.query(Product).count() == count

    def test_drawer_test_in_simulation(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["drawer", "test", "--simulate"])
        assert result.exit_code == 0, result.output
        assert "PASS Pulse sent on SIMULATION" in result.output
