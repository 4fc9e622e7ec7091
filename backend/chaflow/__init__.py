# backend/chaflow/__init__.py
import logging

from flask import Flask, jsonify
from sqlalchemy.exc import OperationalError

from .config import Config
from .extensions import db, migrate
from .errors import ChaflowError, error_response



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.sellers import sellers_bp
    from .routes.products import products_bp
    from .routes.price_profiles import price_profiles_bp
    from .routes.customers import customers_bp
    from .routes.orders import orders_bp
    from .routes.order_links import order_links_bp, public_links_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(sellers_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(price_profiles_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(order_links_bp)
    app.register_blueprint(public_links_bp)
    app.register_blueprint(reports_bp)

    @app.errorhandler(ChaflowError)
    def handle_chaflow_error(exc: ChaflowError):
        body, status = error_response(exc)
        return jsonify(body), status

    @app.errorhandler(OperationalError)
    def handle_database_unavailable(exc: OperationalError):
        # Database unreachable: answer degraded instead of a 500 page
        db.session.rollback()
        app.logger.exception("Database unavailable")
        return jsonify({
            "error": "Database is temporarily unavailable",
            "degraded": True,
        }), 503

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
