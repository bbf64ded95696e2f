# backend/orderdesk/__init__.py
import logging
import os

from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .services import build_services
from .storage import build_store


def create_app(config_object=None, **overrides) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("orderdesk").setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations"))

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One store per app, opened here and closed by shutdown()
    store = build_store(app.config, db)
    with app.app_context():
        store.open()
    app.extensions["orderdesk"] = build_services(
        store,
        retry_attempts=int(app.config.get("RETRY_ATTEMPTS", 3)),
        retry_backoff=float(app.config.get("RETRY_BACKOFF_BASE", 0.05)),
    )

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.cash import cash_bp
    from .routes.users import users_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(cash_bp)
    app.register_blueprint(users_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "X-User-Name, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def shutdown(app: Flask) -> None:
    """Close the app's store. Safe to call more than once."""
    services = app.extensions.pop("orderdesk", None)
    if services is None:
        return
    with app.app_context():
        services.store.close()
