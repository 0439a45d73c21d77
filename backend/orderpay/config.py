# backend/orderpay/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _gateway_block(key: str, *fields: str) -> dict:
    """
    Build one gateway's settings from GATEWAY_<KEY>_* environment variables.

    Every gateway gets `enabled` and `sandbox` (both default on); credential
    fields default to None so validate_configuration() can fail closed.
    """
    prefix = f"GATEWAY_{key.upper()}_"
    block = {
        "enabled": _env_bool(prefix + "ENABLED", True),
        "sandbox": _env_bool(prefix + "SANDBOX", True),
    }
    for field in fields:
        block[field] = os.environ.get(prefix + field.upper())
    return block


def load_gateway_settings() -> dict:
    return {
        "credit_card": _gateway_block("credit_card", "merchant_id", "api_key"),
        "paypal": _gateway_block("paypal", "client_id", "client_secret"),
        "stripe": _gateway_block("stripe", "publishable_key", "secret_key", "webhook_secret"),
        "bank_transfer": _gateway_block("bank_transfer", "bank_name", "account_number", "account_name"),
    }


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/orderpay.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///orderpay.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")

    # Cost factor for bcrypt; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Payment gateways
    DEFAULT_PAYMENT_GATEWAY = os.environ.get("DEFAULT_PAYMENT_GATEWAY", "credit_card")
    PAYMENT_GATEWAYS = load_gateway_settings()

    # Probability that a simulated charge/refund succeeds
    PAYMENT_SIMULATED_SUCCESS_RATE = float(os.environ.get("PAYMENT_SIMULATED_SUCCESS_RATE", "0.9"))

    DEFAULT_PER_PAGE = 15
    MAX_PER_PAGE = 100
