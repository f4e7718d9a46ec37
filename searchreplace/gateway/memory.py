"""
In-memory gateway for testing and dry runs.

Tables are plain lists of dicts; rows are addressed by their position.
Every fetch/write is recorded so tests can assert on the batching pattern.
"""

import copy
from typing import Any, Optional

from searchreplace.errors import ConnectionError, QueryError, WriteError
from searchreplace.gateway.base import Gateway, Row

ROW_KEY = "_position"


class InMemoryGateway(Gateway):
    """
    Gateway over in-process tables.

    All data is lost when the instance is garbage collected.

    Usage:
        gateway = InMemoryGateway({"users": [{"name": "alice"}]})
        gateway.fetch_rows("users", 0, 10)
    """

    backend = "memory"

    def __init__(self, tables: Optional[dict[str, list[dict[str, Any]]]] = None):
        self._tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self._closed = False
        self.fetch_calls: list[tuple[str, int, Optional[int]]] = []
        self.write_calls: list[tuple[str, dict[str, Any], dict[str, Any]]] = []

    def connect(self) -> "InMemoryGateway":
        self._closed = False
        return self

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionError("In-memory gateway is closed")

    def list_tables(self) -> list[str]:
        self._check_open()
        return sorted(self._tables)

    def fetch_rows(self, table: str, offset: int = 0, limit: Optional[int] = None) -> list[Row]:
        self._check_open()
        self.fetch_calls.append((table, offset, limit))
        if table not in self._tables:
            raise QueryError(f"Table doesn't exist: {table}")

        rows = self._tables[table]
        end = len(rows) if limit is None else offset + limit
        return [
            Row(key={ROW_KEY: position}, values=copy.deepcopy(rows[position]))
            for position in range(offset, min(end, len(rows)))
        ]

    def write_row(self, table: str, key: dict[str, Any], changes: dict[str, Any]) -> bool:
        self._check_open()
        self.write_calls.append((table, dict(key), dict(changes)))
        if table not in self._tables:
            raise WriteError(f"Table doesn't exist: {table}", table=table, key=key)

        position = key.get(ROW_KEY)
        rows = self._tables[table]
        if position is None or not 0 <= position < len(rows):
            return False

        unknown = set(changes) - set(rows[position])
        if unknown:
            raise WriteError(
                f"Unknown columns for {table}: {sorted(unknown)}", table=table, key=key
            )
        rows[position].update(changes)
        return True

    def close(self) -> None:
        self._closed = True

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Return a copy of a table's current contents."""
        return [dict(row) for row in self._tables.get(table, [])]
