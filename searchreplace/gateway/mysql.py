"""
MySQL gateway backed by PyMySQL.

Rows are addressed by primary key when the table has one. Tables without a
primary key fall back to matching on every original column value (NULL-safe,
LIMIT 1), which is correct but slower and may touch any one of several
identical rows. FLOAT and DOUBLE values are left out of that fallback key,
since the float read back rarely compares equal to the stored value.

Pages are ordered by primary key, so primary key columns are never
rewritten: changing one would move the row to another OFFSET window and
later batches would skip or repeat rows.
"""

import logging
from typing import Any, Optional

import pymysql
from pymysql.cursors import DictCursor

from searchreplace.errors import ConfigurationError, ConnectionError, QueryError, WriteError
from searchreplace.gateway.base import Gateway, GatewayConfig, Row

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306

# MySQL has no "no limit" keyword; this is the documented idiom
MAX_LIMIT = 18446744073709551615

# Client error codes that mean the connection itself is gone
CONNECTION_LOST_CODES = {2002, 2003, 2006, 2013, 2055}


def quote_identifier(name: str) -> str:
    """Quote a table/column name for MySQL."""
    return "`" + name.replace("`", "``") + "`"


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, pymysql.err.InterfaceError):
        return True
    if isinstance(exc, pymysql.err.OperationalError) and exc.args:
        return exc.args[0] in CONNECTION_LOST_CODES
    return False


class MySQLGateway(Gateway):
    """
    Gateway over a PyMySQL connection.

    The connection is opened lazily on first use, so constructing the
    gateway never performs I/O. A connection opened here is closed by
    close() and reopened by the next connect(); a handle passed in through
    from_connection() belongs to the caller and is never closed here.
    Between close() and connect() every call raises ConnectionError.
    """

    backend = "mysql"

    def __init__(
        self,
        host: str = "",
        username: str = "",
        password: str = "",
        database: str = "",
        port: Optional[int] = None,
        connect_timeout: int = 10,
        connection: Optional[pymysql.connections.Connection] = None,
    ):
        if connection is None:
            if not host:
                raise ConfigurationError("MySQL gateway requires a host")
            if not username:
                raise ConfigurationError("MySQL gateway requires a username")
            if not database:
                raise ConfigurationError("MySQL gateway requires a database name")
        self.host = host
        self.username = username
        self.password = password or ""
        self.database = database
        self.port = port or DEFAULT_PORT
        self.connect_timeout = connect_timeout
        self._conn = connection
        self._owns_connection = connection is None
        self._closed = False
        self._key_columns: dict[str, list[str]] = {}

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "MySQLGateway":
        return cls(
            host=config.host,
            username=config.username,
            password=config.password,
            database=config.database,
            port=config.port,
            connect_timeout=config.connect_timeout,
        )

    @classmethod
    def from_connection(cls, connection: pymysql.connections.Connection) -> "MySQLGateway":
        return cls(connection=connection)

    def connect(self) -> "MySQLGateway":
        self._closed = False
        if self._conn is None:
            try:
                self._conn = pymysql.connect(
                    host=self.host,
                    user=self.username,
                    password=self.password,
                    database=self.database,
                    port=self.port,
                    connect_timeout=self.connect_timeout,
                    charset="utf8mb4",
                    cursorclass=DictCursor,
                    autocommit=False,
                )
            except pymysql.MySQLError as e:
                raise ConnectionError(
                    f"Failed to connect to MySQL at {self.host}:{self.port}: {e}"
                ) from e
            logger.debug(f"Connected to MySQL {self.host}:{self.port}/{self.database}")
        return self

    def _ensure_open(self) -> None:
        if self._closed:
            raise ConnectionError("MySQL gateway is closed")
        self.connect()

    def _query(self, sql: str, params: Optional[tuple] = None) -> list[dict[str, Any]]:
        self._ensure_open()
        with self._conn.cursor(DictCursor) as cur:
            cur.execute(sql, params)
            return list(cur.fetchall())

    def list_tables(self) -> list[str]:
        try:
            records = self._query("SHOW FULL TABLES WHERE Table_type = 'BASE TABLE'")
        except pymysql.MySQLError as e:
            if _is_connection_error(e):
                raise ConnectionError(f"Lost MySQL connection: {e}") from e
            raise QueryError(f"Failed to list tables: {e}") from e
        # First column is "Tables_in_<database>"
        return sorted(next(iter(record.values())) for record in records)

    def _primary_key(self, table: str) -> list[str]:
        if table not in self._key_columns:
            records = self._query(
                f"SHOW KEYS FROM {quote_identifier(table)} WHERE Key_name = 'PRIMARY'"
            )
            records.sort(key=lambda r: r["Seq_in_index"])
            self._key_columns[table] = [r["Column_name"] for r in records]
        return self._key_columns[table]

    def fetch_rows(self, table: str, offset: int = 0, limit: Optional[int] = None) -> list[Row]:
        try:
            key_columns = self._primary_key(table)
            sql = f"SELECT * FROM {quote_identifier(table)}"
            if key_columns:
                sql += " ORDER BY " + ", ".join(quote_identifier(c) for c in key_columns)
            sql += " LIMIT %s OFFSET %s"
            records = self._query(sql, (MAX_LIMIT if limit is None else limit, offset))
        except pymysql.MySQLError as e:
            if _is_connection_error(e):
                raise ConnectionError(f"Lost MySQL connection: {e}") from e
            raise QueryError(f"Failed to fetch rows from {table}: {e}") from e

        rows = []
        for record in records:
            if key_columns:
                key = {column: record[column] for column in key_columns}
            else:
                key = {column: value for column, value in record.items() if not isinstance(value, float)}
                key = key or dict(record)
            rows.append(Row(key=key, values=dict(record)))
        return rows

    def write_row(self, table: str, key: dict[str, Any], changes: dict[str, Any]) -> bool:
        if not changes:
            return False

        key_columns = self._key_columns.get(table, [])
        protected = sorted(set(changes) & set(key_columns))
        if protected:
            changes = {column: value for column, value in changes.items() if column not in key_columns}
            if not changes:
                raise WriteError(
                    f"Primary key columns of {table} are not rewritten: {protected}", table=table, key=key
                )
            logger.warning(
                f"{table}: leaving primary key columns {protected} unchanged for {key}", extra={"table": table}
            )

        assignments = ", ".join(f"{quote_identifier(column)} = %s" for column in changes)
        conditions = " AND ".join(f"{quote_identifier(column)} <=> %s" for column in key)
        sql = f"UPDATE {quote_identifier(table)} SET {assignments} WHERE {conditions} LIMIT 1"
        params = tuple(changes.values()) + tuple(key.values())

        self._ensure_open()
        try:
            with self._conn.cursor() as cur:
                affected = cur.execute(sql, params)
            self._conn.commit()
        except pymysql.MySQLError as e:
            if _is_connection_error(e):
                raise ConnectionError(f"Lost MySQL connection: {e}") from e
            try:
                self._conn.rollback()
            except pymysql.MySQLError:
                logger.debug("Rollback after failed write also failed", exc_info=True)
            raise WriteError(f"Failed to update {table} {key}: {e}", table=table, key=key) from e
        return affected > 0

    def close(self) -> None:
        self._closed = True
        if self._owns_connection and self._conn is not None:
            if self._conn.open:
                self._conn.close()
            self._conn = None
