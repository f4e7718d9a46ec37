"""
Execution report schemas.

ExecutionReport is what SearchReplace.execute() returns: one TableReport per
processed table (in worklist order), the overall status, and on failure the
ExecutionError that aborted the run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from searchreplace.errors import ExecutionError


class RunState(str, Enum):
    """Lifecycle of a SearchReplace run."""
    CONFIGURED = "configured"
    VALIDATED = "validated"
    RESOLVING = "resolving"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TableReport:
    """
    Row counts for a single table.

    Attributes:
        table: Table name
        rows_scanned: Rows read from the gateway
        rows_changed: Rows whose substituted values were written (or would
                      have been, in a dry run)
        rows_failed: Rows whose write raised WriteError or matched nothing
    """
    table: str
    rows_scanned: int = 0
    rows_changed: int = 0
    rows_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "rows_scanned": self.rows_scanned,
            "rows_changed": self.rows_changed,
            "rows_failed": self.rows_failed,
        }


@dataclass
class ExecutionReport:
    """Result of executing a search/replace run."""
    status: RunState
    tables: list[TableReport] = field(default_factory=list)
    error: Optional[ExecutionError] = None
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == RunState.COMPLETED

    @property
    def rows_scanned(self) -> int:
        return sum(t.rows_scanned for t in self.tables)

    @property
    def rows_changed(self) -> int:
        return sum(t.rows_changed for t in self.tables)

    @property
    def rows_failed(self) -> int:
        return sum(t.rows_failed for t in self.tables)

    @property
    def duration_ms(self) -> Optional[int]:
        """Calculate run duration in milliseconds if both timestamps present."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return int(delta.total_seconds() * 1000)
        return None

    def get_table(self, table: str) -> Optional[TableReport]:
        for report in self.tables:
            if report.table == table:
                return report
        return None

    def raise_for_status(self) -> None:
        """Raise the run's ExecutionError if it failed."""
        if self.status == RunState.FAILED:
            raise self.error or ExecutionError(None, "; ".join(self.errors) or "unknown error")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "dry_run": self.dry_run,
            "tables": [t.to_dict() for t in self.tables],
            "totals": {
                "rows_scanned": self.rows_scanned,
                "rows_changed": self.rows_changed,
                "rows_failed": self.rows_failed,
            },
        }
        if self.error is not None:
            result["error"] = str(self.error)
        if self.errors:
            result["errors"] = list(self.errors)
        if self.duration_ms is not None:
            result["duration_ms"] = self.duration_ms
        return result
