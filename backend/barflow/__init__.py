# backend/barflow/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.sessions import sessions_bp
    from .routes.credit import credit_bp
    from .routes.accounting import accounting_bp
    from .routes.config import config_bp
    from .routes.pos import pos_bp
    from .routes.drawer import drawer_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(credit_bp)
    app.register_blueprint(accounting_bp)
    app.register_blueprint(config_bp)
    app.register_blueprint(pos_bp)
    app.register_blueprint(drawer_bp)

    # One drawer per app; it runs its own threads outside request context
    from .services.drawer_service import create_drawer_service
    drawer = create_drawer_service(
        {
            "port": app.config.get("CASH_DRAWER_PORT"),
            "baud_rate": app.config.get("CASH_DRAWER_BAUD_RATE"),
            "open_pulse_ms": app.config.get("CASH_DRAWER_PULSE_MS"),
            "max_drawer_open_ms": app.config.get("CASH_DRAWER_MAX_OPEN_MS"),
            "sensor_enabled": app.config.get("CASH_DRAWER_SENSOR_ENABLED"),
        },
        simulation=True if app.config.get("CASH_DRAWER_SIMULATION") else None,
    )
    drawer.connect()
    app.extensions["cash_drawer"] = drawer

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
