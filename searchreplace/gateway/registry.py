"""
Gateway registry for constructing adapters by backend name.

The registry maps backend names to Gateway classes, providing a central
construction point for SearchReplace.set_database() and the CLI:
- mysql: MySQLGateway (PyMySQL)
- sqlite: SQLiteGateway (sqlite3)
- memory: InMemoryGateway (tests, dry runs)
"""

import sqlite3
from typing import Any

import pymysql

from searchreplace.errors import ConfigurationError
from searchreplace.gateway.base import Gateway, GatewayConfig
from searchreplace.gateway.memory import InMemoryGateway
from searchreplace.gateway.mysql import MySQLGateway
from searchreplace.gateway.sqlite import SQLiteGateway


class GatewayRegistry:
    """
    Registry for gateway construction by backend name.

    Usage:
        registry = GatewayRegistry.create_default()
        gateway = registry.create(GatewayConfig(backend="sqlite", sqlite_path="app.db"))
    """

    def __init__(self) -> None:
        """Initialize an empty gateway registry."""
        self._gateways: dict[str, type[Gateway]] = {}

    def register(self, backend: str, gateway_cls: type[Gateway]) -> None:
        """
        Register a gateway class for a backend name.

        Args:
            backend: Backend name (e.g. mysql, sqlite)
            gateway_cls: Gateway subclass providing a from_config() classmethod
        """
        self._gateways[backend] = gateway_cls

    def get(self, backend: str) -> type[Gateway]:
        """
        Get the gateway class for a backend name.

        Raises:
            ConfigurationError: If no gateway is registered for this backend
        """
        if backend not in self._gateways:
            registered = list(self._gateways.keys())
            raise ConfigurationError(
                f"No gateway registered for backend: {backend}. "
                f"Registered: {registered}"
            )
        return self._gateways[backend]

    def has(self, backend: str) -> bool:
        return backend in self._gateways

    def list_backends(self) -> list[str]:
        return list(self._gateways.keys())

    def create(self, config: GatewayConfig) -> Gateway:
        """
        Construct an (unopened) gateway from connection parameters.

        Raises:
            ConfigurationError: If the backend is unknown or parameters are missing
        """
        gateway_cls = self.get(config.backend)
        if gateway_cls is InMemoryGateway:
            return InMemoryGateway()
        return gateway_cls.from_config(config)

    @classmethod
    def create_default(cls) -> "GatewayRegistry":
        """Create a registry with the built-in backends."""
        registry = cls()
        registry.register("mysql", MySQLGateway)
        registry.register("sqlite", SQLiteGateway)
        registry.register("memory", InMemoryGateway)
        return registry


_default_registry = GatewayRegistry.create_default()


def create_gateway(config: GatewayConfig) -> Gateway:
    """Construct a gateway without opening it."""
    return _default_registry.create(config)


def connect(config: GatewayConfig) -> Gateway:
    """
    Construct a gateway and open its connection.

    Raises:
        ConfigurationError: If the parameters are invalid
        ConnectionError: If the backend cannot be reached
    """
    return create_gateway(config).connect()


def from_connection(handle: Any) -> Gateway:
    """
    Wrap an already-open native connection handle.

    Supports sqlite3.Connection and PyMySQL connections. Credential
    validation is skipped since the handle is already authenticated.

    Raises:
        ConfigurationError: If the handle type is not supported
    """
    if isinstance(handle, sqlite3.Connection):
        return SQLiteGateway.from_connection(handle)
    if isinstance(handle, pymysql.connections.Connection):
        return MySQLGateway.from_connection(handle)
    raise ConfigurationError(
        f"Unsupported database resource: {type(handle).__name__}"
    )
