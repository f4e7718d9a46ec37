"""
Gateway module for searchreplace database backends.

This module provides the gateway abstraction layer that enforces clean boundaries:
- SearchReplace owns configuration, table resolution and batching
- gateways own the physical connection and the SQL dialect

Usage:
    from searchreplace.gateway import GatewayConfig, connect

    gateway = connect(GatewayConfig(backend="sqlite", sqlite_path="app.db"))
    gateway.list_tables()
"""

from searchreplace.gateway.base import Gateway, GatewayConfig, Row
from searchreplace.gateway.memory import InMemoryGateway
from searchreplace.gateway.mysql import MySQLGateway
from searchreplace.gateway.sqlite import SQLiteGateway
from searchreplace.gateway.registry import (
    GatewayRegistry,
    connect,
    create_gateway,
    from_connection,
)

__all__ = [
    "Gateway",
    "GatewayConfig",
    "Row",
    "InMemoryGateway",
    "MySQLGateway",
    "SQLiteGateway",
    "GatewayRegistry",
    "connect",
    "create_gateway",
    "from_connection",
]
