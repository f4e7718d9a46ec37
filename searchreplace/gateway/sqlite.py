"""
SQLite gateway.

Rows are addressed and ordered by rowid, so tables declared WITHOUT ROWID
cannot be scanned (fetch_rows raises QueryError for them).
"""

import logging
import sqlite3
from typing import Any, Optional

from searchreplace.errors import ConfigurationError, ConnectionError, QueryError, WriteError
from searchreplace.gateway.base import Gateway, GatewayConfig, Row

logger = logging.getLogger(__name__)

ROWID_ALIAS = "__searchreplace_rowid__"


def quote_identifier(name: str) -> str:
    """Quote a table/column name for SQLite."""
    return '"' + name.replace('"', '""') + '"'


class SQLiteGateway(Gateway):
    """
    Gateway over a sqlite3 connection.

    A database opened from a path is closed by close() and reopened by the
    next connect() (or `with gateway:` block). A handle passed in through
    from_connection() belongs to the caller and is never closed here.
    Between close() and connect() every call raises ConnectionError.
    """

    backend = "sqlite"

    def __init__(self, path: str = "", timeout: float = 10.0, connection: Optional[sqlite3.Connection] = None):
        if connection is None and not path:
            raise ConfigurationError("SQLite gateway requires a database path")
        self.path = path
        self.timeout = timeout
        self._conn = connection
        self._owns_connection = connection is None
        self._closed = False

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "SQLiteGateway":
        return cls(path=config.sqlite_path or config.database, timeout=config.connect_timeout)

    @classmethod
    def from_connection(cls, connection: sqlite3.Connection) -> "SQLiteGateway":
        return cls(connection=connection)

    def connect(self) -> "SQLiteGateway":
        self._closed = False
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(self.path, timeout=self.timeout)
            except sqlite3.Error as e:
                raise ConnectionError(f"Failed to open SQLite database {self.path}: {e}") from e
            logger.debug(f"Opened SQLite database {self.path}")
        return self

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self._closed:
            raise ConnectionError("SQLite gateway is closed")
        self.connect()
        try:
            return self._conn.execute(sql, params)
        except sqlite3.ProgrammingError as e:
            # Raised for operations on a closed connection
            raise ConnectionError(f"SQLite connection unusable: {e}") from e

    def list_tables(self) -> list[str]:
        try:
            cursor = self._execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise QueryError(f"Failed to list tables: {e}") from e

    def fetch_rows(self, table: str, offset: int = 0, limit: Optional[int] = None) -> list[Row]:
        # LIMIT -1 means no limit in SQLite
        sql = (
            f"SELECT rowid AS {ROWID_ALIAS}, * FROM {quote_identifier(table)} "
            f"ORDER BY rowid LIMIT ? OFFSET ?"
        )
        try:
            cursor = self._execute(sql, (-1 if limit is None else limit, offset))
            columns = [desc[0] for desc in cursor.description]
            records = cursor.fetchall()
        except sqlite3.Error as e:
            raise QueryError(f"Failed to fetch rows from {table}: {e}") from e

        rows = []
        for record in records:
            values = dict(zip(columns, record))
            rowid = values.pop(ROWID_ALIAS)
            rows.append(Row(key={"rowid": rowid}, values=values))
        return rows

    def write_row(self, table: str, key: dict[str, Any], changes: dict[str, Any]) -> bool:
        if not changes:
            return False

        assignments = ", ".join(f"{quote_identifier(column)} = ?" for column in changes)
        sql = f"UPDATE {quote_identifier(table)} SET {assignments} WHERE rowid = ?"
        params = tuple(changes.values()) + (key["rowid"],)
        try:
            cursor = self._execute(sql, params)
            self._conn.commit()
        except sqlite3.Error as e:
            raise WriteError(f"Failed to update {table} rowid={key['rowid']}: {e}", table=table, key=key) from e
        return cursor.rowcount > 0

    def close(self) -> None:
        self._closed = True
        if self._owns_connection and self._conn is not None:
            self._conn.close()
            self._conn = None
