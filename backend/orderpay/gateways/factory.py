# Overview: Registry of payment gateway constructors with a thread-safe instance cache.

"""
Payment gateway factory

WHY: Callers ask for a gateway by key ("stripe") and never import concrete
classes. The registry is filled once in the app factory; instances are
built lazily and cached so a gateway is constructed at most once per key.

CONCURRENCY: make() checks and fills the cache under one lock. Cached
gateways hold no per-call state, so sharing them across threads is safe.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ..errors import GatewayError
from .base import PaymentGateway

logger = logging.getLogger(__name__)

GatewayConstructor = Callable[[], PaymentGateway]


class PaymentGatewayFactory:
    def __init__(self, default_gateway: str = "credit_card"):
        self.default_gateway = default_gateway
        self._constructors: dict[str, GatewayConstructor] = {}
        self._instances: dict[str, PaymentGateway] = {}
        self._lock = threading.Lock()

    def register(self, key: str, constructor: GatewayConstructor) -> "PaymentGatewayFactory":
        """Add or replace a gateway; any cached instance for `key` is dropped."""
        with self._lock:
            self._constructors[key] = constructor
            self._instances.pop(key, None)
        return self

    def has(self, key: str) -> bool:
        return key in self._constructors

    def registered(self) -> list[str]:
        return list(self._constructors)

    def make(self, key: str) -> PaymentGateway:
        """
        Return the cached gateway for `key`, building it on first use.

        Raises GatewayError.not_found for unknown keys and
        GatewayError.not_enabled for gateways switched off in settings.
        """
        with self._lock:
            cached = self._instances.get(key)
            if cached is not None:
                return cached

            constructor = self._constructors.get(key)
            if constructor is None:
                raise GatewayError.not_found(key)

            gateway = self._build(key, constructor)
            if not gateway.is_enabled():
                raise GatewayError.not_enabled(key)

            self._instances[key] = gateway
            return gateway

    def resolve(self, key: str) -> PaymentGateway:
        """Fresh instance, no cache and no enabled check (inspection only)."""
        constructor = self._constructors.get(key)
        if constructor is None:
            raise GatewayError.not_found(key)
        return self._build(key, constructor)

    def get_default(self) -> PaymentGateway:
        return self.make(self.default_gateway)

    def get_available_gateways(self) -> dict[str, PaymentGateway]:
        """Enabled and correctly configured gateways, keyed by name."""
        available = {}
        for key in self.registered():
            try:
                gateway = self.resolve(key)
                if gateway.is_enabled() and gateway.validate_configuration():
                    available[key] = gateway
            except Exception:
                # One misbehaving gateway must not hide the others.
                logger.warning("Skipping gateway %s while listing available gateways", key, exc_info=True)
        return available

    def get_gateway_info(self) -> list[dict]:
        info = []
        for key in self.registered():
            try:
                gateway = self.resolve(key)
                entry = {
                    "name": gateway.name,
                    "display_name": gateway.display_name,
                    "enabled": gateway.is_enabled(),
                    "supports_refunds": gateway.supports_refunds(),
                }
            except Exception:
                logger.warning("Skipping gateway %s while describing gateways", key, exc_info=True)
                continue
            info.append(entry)
        return info

    def _build(self, key: str, constructor: GatewayConstructor) -> PaymentGateway:
        try:
            gateway = constructor()
        except Exception as exc:
            raise GatewayError(
                f"Payment gateway '{key}' could not be constructed: {exc}", 500, key
            ) from exc

        if not isinstance(gateway, PaymentGateway):
            raise GatewayError(
                f"Gateway class for '{key}' must implement PaymentGateway", 500, key
            )
        if gateway.name != key:
            raise GatewayError(
                f"Gateway registered as '{key}' reports name '{gateway.name}'", 500, key
            )
        return gateway
