# Overview: Flask extension instances and accessors for the app-scoped services.

from flask import current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()

# Key under app.extensions holding the gateway factory and services
EXTENSION_KEY = "orderpay"


def _registry() -> dict:
    return current_app.extensions[EXTENSION_KEY]


def gateway_factory():
    return _registry()["gateway_factory"]


def order_service():
    return _registry()["order_service"]


def payment_service():
    return _registry()["payment_service"]
