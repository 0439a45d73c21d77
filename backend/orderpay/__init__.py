# backend/orderpay/__init__.py
import logging

from flask import Flask, jsonify, request
from flask.logging import default_handler
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import DomainError
from .extensions import EXTENSION_KEY, db, migrate
from .validation import ValidationError


def create_app(test_config: dict | None = None, outcomes=None) -> Flask:
    """
    Application factory.

    `test_config` overrides Config values; `outcomes` replaces the random
    outcome source every simulated gateway rolls against.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    _init_services(app, outcomes)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.orders import orders_bp
    from .routes.payments import payments_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)

    _register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)

    # Service and gateway modules log through logging.getLogger(__name__)
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(level)
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)


def _init_services(app: Flask, outcomes) -> None:
    from .gateways import RandomOutcome, build_gateway_factory
    from .repositories import OrderRepository, PaymentRepository
    from .services.order_service import OrderService
    from .services.payment_service import PaymentService

    if outcomes is None:
        outcomes = RandomOutcome(app.config["PAYMENT_SIMULATED_SUCCESS_RATE"])

    factory = build_gateway_factory(
        app.config["PAYMENT_GATEWAYS"],
        app.config["DEFAULT_PAYMENT_GATEWAY"],
        outcomes,
    )
    order_repository = OrderRepository()
    payment_repository = PaymentRepository()

    app.extensions[EXTENSION_KEY] = {
        "gateway_factory": factory,
        "order_service": OrderService(order_repository, payment_repository),
        "payment_service": PaymentService(factory, payment_repository, order_repository),
    }


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        if exc.code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.code

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return jsonify(exc.to_dict()), 422

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({"success": False, "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(exc):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "message": "Internal server error"}), 500
