# backend/multico/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("multico").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.tenants import tenants_bp
    from .routes.companies import companies_bp
    from .routes.accounts import accounts_bp
    from .routes.sales_orders import sales_orders_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.invoices import invoices_bp
    from .routes.bills import bills_bp
    from .routes.receipts import receipts_bp
    from .routes.payments import payments_bp
    from .routes.intercompany import intercompany_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(tenants_bp)
    app.register_blueprint(companies_bp)
    app.register_blueprint(accounts_bp)
    app.register_blueprint(sales_orders_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(bills_bp)
    app.register_blueprint(receipts_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(intercompany_bp)
    app.register_blueprint(reports_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS", ()))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Tenant-ID"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
