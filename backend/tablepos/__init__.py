# backend/tablepos/__init__.py
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import PosError
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        # Applied before extensions bind so tests can point at their own database
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.suppliers import suppliers_bp
    from .routes.tables import tables_bp
    from .routes.registers import registers_bp
    from .routes.expenses import expenses_bp
    from .routes.sales import sales_bp
    from .routes.purchases import purchases_bp
    from .routes.inventory import inventory_bp
    from .routes.reservations import reservations_bp
    from .routes.discounts import discounts_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(tables_bp)
    app.register_blueprint(registers_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(reservations_bp)
    app.register_blueprint(discounts_bp)

    @app.errorhandler(PosError)
    def handle_pos_error(exc: PosError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(ValueError)
    def handle_bad_input(exc: ValueError):
        # Malformed dates / numbers in query strings and bodies
        return jsonify({"error": str(exc), "details": {}}), 400

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
