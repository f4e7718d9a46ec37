"""
Gateway protocol and common types.

A Gateway is the capability interface over a physical database. The
SearchReplace orchestrator only ever talks to a Gateway:
- list_tables: table enumeration (deterministic order)
- fetch_rows: bounded row reads (offset/limit pagination)
- write_row: single-row write-back of changed columns

Each backend (mysql, sqlite, memory) ships one Gateway subclass.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Row:
    """
    A single row read from a table.

    Attributes:
        key: Column -> value mapping that addresses the row for write-back
             (primary key columns, rowid, or the full original row)
        values: Column -> value mapping of the row contents
    """
    key: dict[str, Any]
    values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayConfig:
    """
    Connection parameters for constructing a gateway.

    Attributes:
        backend: Backend name ("mysql", "sqlite" or "memory")
        host: Database host (mysql)
        username: Database user (mysql)
        password: Database password, may be empty
        database: Database/schema name (mysql)
        port: TCP port, backend default when None
        sqlite_path: Database file path (sqlite)
        connect_timeout: Seconds to wait when opening the connection
    """
    backend: str = "mysql"
    host: str = ""
    username: str = ""
    password: str = ""
    database: str = ""
    port: Optional[int] = None
    sqlite_path: str = ""
    connect_timeout: int = 10

    def __repr__(self) -> str:
        # Keep the password out of logs
        return (
            f"GatewayConfig(backend={self.backend}, host={self.host}, "
            f"username={self.username}, database={self.database or self.sqlite_path})"
        )


class Gateway(ABC):
    """
    Abstract base class for database gateways.

    Implementations must raise the searchreplace gateway errors:
    ConnectionError when the backend is unreachable, QueryError for failed
    reads and WriteError for a failed row write. Anything else escaping a
    gateway call is a bug in the adapter.
    """

    backend: str = "abstract"

    @abstractmethod
    def connect(self) -> "Gateway":
        """
        Open the underlying connection if it is not open yet.

        Returns:
            self

        Raises:
            ConnectionError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    def list_tables(self) -> list[str]:
        """
        List all tables in the database.

        Returns:
            Table names in a deterministic order

        Raises:
            QueryError: If the listing fails
        """
        pass

    @abstractmethod
    def fetch_rows(self, table: str, offset: int = 0, limit: Optional[int] = None) -> list[Row]:
        """
        Fetch a window of rows from a table.

        Args:
            table: Table name
            offset: Number of rows to skip
            limit: Maximum rows to return, None for "to end of table"

        Returns:
            Rows in a stable order; empty when offset is past the end

        Raises:
            QueryError: If the read fails
        """
        pass

    @abstractmethod
    def write_row(self, table: str, key: dict[str, Any], changes: dict[str, Any]) -> bool:
        """
        Write changed column values back to a single row.

        Args:
            table: Table name
            key: Row key as returned in Row.key
            changes: Column -> new value

        Returns:
            True if a row was updated, False if nothing matched the key

        Raises:
            WriteError: If the write fails
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the underlying connection. Safe to call more than once."""
        pass

    def __enter__(self) -> "Gateway":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
