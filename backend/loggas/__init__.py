# backend/loggas/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"), format=LOG_FORMAT)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Change notices for collection subscribers
    from .services.subscription_service import register_session_events
    register_session_events()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.ledger import ledger_bp
    from .routes.customers import customers_bp
    from .routes.deliveries import deliveries_bp
    from .routes.reports import reports_bp
    from .routes.insights import insights_bp
    from .routes.collections import collections_bp
    from .routes.store import store_bp, shop_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(insights_bp)
    app.register_blueprint(collections_bp)
    app.register_blueprint(store_bp)
    app.register_blueprint(shop_bp)

    @app.after_request
    def log_request(response):
        app.logger.info("%s %s -> %s", request.method, request.path, response.status_code)
        return response

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
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
